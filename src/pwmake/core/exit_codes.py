from __future__ import annotations

OK = 0
ERR_CONFIG = 2
ERR_PARSE = 3
ERR_CYCLE = 4
ERR_UNKNOWN_TARGET = 5
ERR_EXPANSION = 6
ERR_COMMAND = 7
ERR_VALIDATION = 8
ERR_INTERNAL = 99

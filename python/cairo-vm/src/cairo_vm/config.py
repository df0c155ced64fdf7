"""Centralized configuration for the Cairo VM."""

import os
from typing import Dict, List, Optional


class VmConfig:
    """Centralized configuration for the Cairo VM."""

    # Builtins a program may declare, in the order they must be declared
    BUILTIN_ORDER: List[str] = [
        "output",
        "pedersen",
        "range_check",
        "ecdsa",
        "bitwise",
        "ec_op",
        "poseidon",
        "segment_arena",
    ]

    # Declared for ordering only, never instantiated
    UNSUPPORTED_BUILTINS = ("ecdsa", "segment_arena")

    # Steps per builtin instance, per layout. None means no ratio.
    LAYOUTS: Dict[str, Dict[str, Optional[int]]] = {
        "plain": {},
        "small": {"output": None, "pedersen": 8, "range_check": 8},
        "all_cairo": {
            "output": None,
            "pedersen": 256,
            "range_check": 8,
            "bitwise": 16,
            "ec_op": 1024,
            "poseidon": 256,
        },
    }
    DEFAULT_LAYOUT = "all_cairo"

    # Run limits
    DEFAULT_MAX_STEPS: Optional[int] = None

    # Logging configuration
    LOG_LEVEL = os.getenv("CAIRO_VM_LOG_LEVEL", "INFO")
    LOG_FORMAT = "%(message)s"
    LOG_DATE_FORMAT = "[%X]"

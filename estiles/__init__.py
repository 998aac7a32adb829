# (C) 2025 Rodrigo Rodrigues da Silva <rodrigopitanga@posteo.net>
# SPDX-License-Identifier: GPL-3.0-or-later
__version__ = "0.1.0"

__all__ = [
    "config", "errors", "schemas", "metrics", "main", "cli", "stores", "log",
]

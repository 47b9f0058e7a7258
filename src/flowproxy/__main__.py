# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""CLI entry point for flowproxy (fproxy command).

Usage:
    fproxy --help
    fproxy users "alice:secret,bob"
    fproxy services services.json
"""

from .cli import main

if __name__ == "__main__":
    main()

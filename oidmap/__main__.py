"""
OIDMap - Module Entry Point.

Allows running as a module:
    python -m oidmap walk <target>
    python -m oidmap translate <oid...>
    python -m oidmap tree <csv>
"""

import sys

from oidmap.cli import main

if __name__ == '__main__':
    sys.exit(main())

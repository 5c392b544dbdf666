"""
Opal CLI Entry Point
====================

Allows running opal as a module: python -m opal
"""

from opal.cli.main import main

if __name__ == "__main__":
    main()

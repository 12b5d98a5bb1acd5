"""
Package entry point.

Allows running the application via:

    python -m coursebook

This simply forwards execution to coursebook.cli.main().
"""

from coursebook.cli import main

if __name__ == "__main__":
    main()

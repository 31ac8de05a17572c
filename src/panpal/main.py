"""Main entry point for the PanPal CLI.

Usage:
    python -m panpal.main --help
    panpal --help  # If installed via pip/uv
"""

from panpal.cli import main

if __name__ == "__main__":
    main()

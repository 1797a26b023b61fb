"""Main entry point when executing doggocli as a package.

This allows running the package using python -m doggocli.
"""

from doggocli.main import cli_entry_point

if __name__ == "__main__":
    cli_entry_point()

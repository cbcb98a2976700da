"""Main entry point when executing mergebot as a package.

This allows running the package using python -m mergebot.
"""

from mergebot.main import cli_entry_point

if __name__ == "__main__":
    cli_entry_point()

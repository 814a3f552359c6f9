"""Main entry point when executing domainiq as a package.

This allows running the package using python -m domainiq.
"""

from domainiq.main import cli_entry_point

if __name__ == "__main__":
    cli_entry_point()

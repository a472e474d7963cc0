"""
Container Builder - Main entry point

Allows running the CLI with `python -m containerbuilder`.
"""

from .cli import cli

if __name__ == "__main__":
    cli()

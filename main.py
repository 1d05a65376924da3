#!/usr/bin/env python3
"""datamapper - Entry point."""
from datamapper.cli.commands import cli


if __name__ == "__main__":
    cli()

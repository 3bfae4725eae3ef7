"""
Entry point for running the chocokit CLI as a module.

Usage: python -m chocokit [command] [options]
"""

from chocokit.cli.parser import main

if __name__ == "__main__":
    main()

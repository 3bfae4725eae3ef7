"""
Entry point for running the chocokit CLI as a module.

Usage: python -m chocokit.cli [command] [options]
"""

from .parser import main

if __name__ == "__main__":
    main()

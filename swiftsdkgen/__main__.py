"""
Entry point for running the generator as a module.

Usage: python -m swiftsdkgen [command] [options]
"""

from swiftsdkgen.cli.parser import main

if __name__ == "__main__":
    main()

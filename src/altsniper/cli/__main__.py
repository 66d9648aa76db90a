"""CLI entry point for altsniper.cli module.

Enables execution via: python -m altsniper.cli <command>
"""

from altsniper.cli.commands import main

if __name__ == "__main__":
    main()

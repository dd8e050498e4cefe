"""
Entry point for running the engine CLI as a module.

Usage:
    python -m hypeos queue --catalog tasks.json
    python -m hypeos --help
"""
from hypeos.cli.main import run

if __name__ == "__main__":
    run()

"""Allow running the FocusFlow CLI directly: python -m focusflow"""
from focusflow.cli.main import cli

if __name__ == "__main__":
    cli()

"""Main entry point for the booklify package."""

from booklify.cli import app


def main():
    """Run the booklify command-line interface."""
    app()


if __name__ == "__main__":
    main()

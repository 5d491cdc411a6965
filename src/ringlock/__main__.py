"""Main entry point for the ringlock package."""
from ringlock.cli import cli


def main():
    """Main entry point function."""
    cli()


if __name__ == "__main__":
    main()

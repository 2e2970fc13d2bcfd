"""Main entry point for the `tm` command."""
from .cli import cli


def main():
    cli(prog_name="tm")

if __name__ == "__main__":
    main()

"""Entry point for 'python -m folio' command."""

from folio.cli import main

if __name__ == "__main__":
    main()

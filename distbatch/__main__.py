"""Allow running distbatch as a module: python -m distbatch."""

from distbatch.cli.main import main

if __name__ == "__main__":
    main()

"""
valstats CLI Entry Point

Allows running the package as a module: python -m valstats
"""

from valstats.cli import main

if __name__ == "__main__":
    main()

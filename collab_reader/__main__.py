"""Package entry point for ``python -m collab_reader``.

WHY: Python's ``-m`` flag looks for ``__main__.py`` inside the package.

HOW: Delegates to the CLI's main().
"""

from collab_reader.cli import main

if __name__ == "__main__":
    main()

"""Package entry point for ``python -m caption_studio``.

Delegates to the CLI's main(); ``python -m caption_studio serve`` starts
the HTTP API.
"""

from caption_studio.cli import main

if __name__ == "__main__":
    main()

"""Entry point for ``python -m sse_transport``."""

from .cli import main

main()

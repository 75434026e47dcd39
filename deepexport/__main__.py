"""Allow running the tool as ``python -m deepexport``."""

from deepexport import main

main()

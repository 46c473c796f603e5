"""Allow `python -m spinup`."""

from .cli import main

main()

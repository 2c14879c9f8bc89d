"""Allow ``python -m lexchat``."""

from lexchat.cli.app import main

main()

"""Allow ``python -m renderwatch``."""

from renderwatch.cli.app import main

main()

"""Allow ``python -m mediaprint``."""

from mediaprint.cli.commands import main

if __name__ == "__main__":
    main()

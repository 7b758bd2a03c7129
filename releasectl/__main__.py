"""Run the releasectl command line tool with `python -m releasectl`."""

from releasectl.tool.releasectl import main

if __name__ == "__main__":
    main()

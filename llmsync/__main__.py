"""Allow `python -m llmsync`."""

from llmsync.cli.main import run

if __name__ == "__main__":
    run()

"""
Entry point for running the supervisor via `python -m imapfilter_supervisor`.
"""

from .main import main

if __name__ == "__main__":
    main()

"""Run the imapfilter supervisor."""

from imapfilter_supervisor.main import main

if __name__ == "__main__":
    main()

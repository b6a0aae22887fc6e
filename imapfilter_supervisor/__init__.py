"""
imapfilter supervisor - keeps imapfilter running on configuration from git.

Clones and fast-forwards the configuration repository, runs imapfilter from
the checkout and restarts it whenever the configuration changes.
"""

__version__ = "0.1.0"

"""
rspass: a personal secret manager.

Every secret is sealed with your RSA key into its own file, every change
is a git commit, and the whole tree travels between machines through a
single remote.
"""

__version__ = "0.1.0"
__author__ = "rspass"

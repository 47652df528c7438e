"""kira: work items tracked in git, and the git mechanics around them."""

__version__ = "0.1.0"

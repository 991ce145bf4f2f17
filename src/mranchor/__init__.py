"""mranchor — anchor AI review comments to GitLab merge request diff lines."""

__version__ = "0.1.0"

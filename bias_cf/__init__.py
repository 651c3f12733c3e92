"""Rating prediction with a bias baseline and user-user neighborhood residuals."""

__version__ = "0.1.0"

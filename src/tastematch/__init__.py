"""tastematch: music-taste compatibility between users' ranked song lists."""

__version__ = "0.1"

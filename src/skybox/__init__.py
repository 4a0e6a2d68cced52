"""skybox — multi-machine project sync with remote locks and ownership."""

__version__ = "0.4.0"

"""imggen - generate images from text prompts."""

__version__ = "0.3.0"

"""imagestudio: one interface over OpenAI and Google image generation, with local history."""

__version__ = "0.1.0"

"""Trade plan synthesis."""

from .synthesizer import synthesize_plan
from .templates import REGIME_TEMPLATES, template_for

__all__ = ["REGIME_TEMPLATES", "synthesize_plan", "template_for"]

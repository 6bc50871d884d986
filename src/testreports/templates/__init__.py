"""Template Engine and built-in default templates."""

from testreports.templates.engine import DEFAULTS_DIR, TemplateEngine, builtin_names

__all__ = ["DEFAULTS_DIR", "TemplateEngine", "builtin_names"]

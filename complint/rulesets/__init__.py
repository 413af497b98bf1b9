"""Rulesets bundled with complint."""

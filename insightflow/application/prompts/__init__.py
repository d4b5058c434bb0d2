"""Prompt templates for discussion agents and analysis extraction."""

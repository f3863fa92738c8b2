"""Civitas: political-system configuration engine for Discord communities."""

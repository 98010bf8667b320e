"""Stat bounds shared by the stat engine and the character model."""

# Upper bound for every raw stat
MAX_STAT_VALUE = 255

"""Curses widgets used by termxfer views."""

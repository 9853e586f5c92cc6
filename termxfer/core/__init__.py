"""Runtime plumbing shared by termxfer activities."""

"""diffnote - diff review with inline comments and repository discovery."""

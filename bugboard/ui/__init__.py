"""CustomTkinter desktop shell for the BugBoard client."""

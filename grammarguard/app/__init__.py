"""Editor session: the control flow behind every user action."""

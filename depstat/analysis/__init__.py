"""Graph algorithms over resolved module dependency graphs."""

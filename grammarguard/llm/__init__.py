"""Remote language service: Gemini model access, prompts and typed calls."""

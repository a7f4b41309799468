"""
Content generation.

- prompts / schemas: what is asked and the reply shape
- provider: the single outbound call (Gemini by default)
- gateway: typed operations that parse and validate every reply
"""

"""
Program Management Assistant
AI module.

Submodules:
    - prompts: snapshot + fixed prompt templates (pure)
    - gateway: HTTP call to the AI endpoint (timeout, single retry)
    - assistant: per-program assistant with an in-flight guard
"""

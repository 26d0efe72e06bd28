"""
Text processing and dialogue modules: checklist extraction, step
sanitization, response normalization and the dialogue state machine.
"""

"""
Command-line tools (python -m backend_satstack.tools.<name>).
"""

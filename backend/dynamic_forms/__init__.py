"""
Dynamic Forms
Declarative form validation shared by the interactive session and the server API
"""

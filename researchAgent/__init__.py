"""researchAgent: a coordinator-led team of LLM agents for deep research.

Run ``python main.py`` for the console or ``python main.py -s`` for the
HTTP server.
"""

__version__ = "0.1.0"

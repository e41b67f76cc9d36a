"""
RESTAGE - Product Replacement Pipeline

Components:
- prompts.py: Builds the instruction text for every pipeline stage
- invoker.py: Calls Gemini for analysis, structured verdicts and image edits
- gate.py: Reference-quality checkpoint that defers to the caller
- transparency.py: Step-by-step log of every model call
- pipeline.py: Orchestrates the complete replacement workflow
- report.py: Writes results and renders the HTML process log
"""

__version__ = '1.0.0'

"""
To-do assistant backend.

REST API for tasks with a conversational assistant whose side-effecting
function calls wait for explicit user approval.
"""

__version__ = "1.0.0"

# Procurement Agent Test Helpers
"""Helper modules for Procurement Agent tests."""

from .matrix_loader import load_test_matrix, MatrixCase, ConversationMatrix
from .assertions import AgentAssertions, AssertionResult

__all__ = [
    "load_test_matrix",
    "MatrixCase",
    "ConversationMatrix",
    "AgentAssertions",
    "AssertionResult",
]

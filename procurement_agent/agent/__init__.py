"""
Conversation core: intent classification, quoting, ordering and replies.
"""

"""
Preconfirm Risk Service

Pre-confirmation fraud checks for outbound payments.
"""

__version__ = "1.0.0"

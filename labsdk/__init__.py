"""
labsdk - shared building blocks for the lab doorbell service.

Subpackages:
    labsdk.logging    Structured, hierarchical logging
    labsdk.transport  Pub/sub bus adapters selected by URI scheme
"""

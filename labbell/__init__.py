"""
labbell - remote lab doorbell service.

Web clients ring a physical doorbell in a registered lab; ring commands are
relayed over a pub/sub bus to the lab's device, and each lab's presence is
tracked from device heartbeats.
"""

__version__ = '1.0.0'

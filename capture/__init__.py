"""
Orbit Capture

Angle-gated still capture for a single 360° turn.

Capture flow:
1. Start - Generate N evenly spaced target headings from the current heading
2. Observe - Feed device headings; a frame is taken when a target is within tolerance
3. Finalize - Order captured frames by target index for export
"""

__version__ = "0.1.0"

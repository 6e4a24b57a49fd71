"""
Orbit Scene Generation

Turns a finalized set of capture frames into a downloaded 3D scene
artifact through the remote generation API.

Pipeline stages:
1. Upload - Downscale, encode and upload each frame as a media asset
2. Create Job - Submit a multi-image generation request with azimuths
3. Poll - Wait for the operation to finish or time out
4. Download - Fetch the splat artifact and store it locally
"""

__version__ = "0.1.0"

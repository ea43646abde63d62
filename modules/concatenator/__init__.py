"""
Concatenator module.

Downloads remote videos into a per-job workspace, joins them in request order
with FFmpeg, and returns the resulting MP4.
"""

from modules.concatenator.process import process as concat_videos

__all__ = ["concat_videos"]

"""
Concatenator configuration.

FFmpeg output settings and workspace file naming.
"""

# Workspace file names
VIDEO_ITEM_TEMPLATE = "video_{index}.mp4"  # zero-based position in the request
MANIFEST_FILENAME = "files.txt"
OUTPUT_FILENAME = "output.mp4"

# Video output settings
OUTPUT_VIDEO_CODEC = "libx264"
OUTPUT_AUDIO_CODEC = "aac"
OUTPUT_MOVFLAGS = "+faststart"  # moov atom first for progressive playback

# Response
OUTPUT_MEDIA_TYPE = "video/mp4"
OUTPUT_DOWNLOAD_NAME = "concatenated.mp4"

# ffprobe runs once per input in the adaptive strategy
FFPROBE_TIMEOUT = 30  # seconds

# Stream properties that must match across inputs for the concat demuxer
PROBE_VIDEO_FIELDS = ("codec_name", "width", "height", "pix_fmt", "r_frame_rate")
PROBE_AUDIO_FIELDS = ("codec_name", "sample_rate", "channels")

STDERR_READ_SIZE = 64 * 1024

# Filter-graph normalization fallbacks when no input could be probed
NORMALIZE_WIDTH = 1920
NORMALIZE_HEIGHT = 1080
NORMALIZE_FPS = "30"
NORMALIZE_SAMPLE_RATE = 48000
NORMALIZE_PIX_FMT = "yuv420p"
NORMALIZE_CHANNEL_LAYOUT = "stereo"

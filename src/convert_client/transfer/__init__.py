"""
Streaming upload pipeline.
The multipart encoder and the HTTP transmitter run concurrently, joined by
an in-memory pipe, so a file is sent without being held in memory.
"""

from .cancel import CancelToken
from .decode import decode_model, decode_status, raise_for_status
from .interfaces import HttpSession, UploadRequest
from .multipart import MultipartEncoder, encode_upload
from .pipe import PipeBridge
from .upload import stream_upload, transmit

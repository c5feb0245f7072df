# coding=utf-8
# Copyright 2024 XiaHan
#
# Use of this source code is governed by an MIT-style
# license that can be found in the LICENSE file or at
# https://opensource.org/licenses/MIT.

VODUP_VERSION = "0.3.0"

DEFAULT_API_URL = "https://vod.bytedanceapi.com/"
DEFAULT_API_VERSION = "2020-11-19"
DEFAULT_REGION = "cn-north-1"
DEFAULT_SERVICE = "vod"
DEFAULT_SPACE_NAME = "aweme"
DEFAULT_APP_ID = "2906"
DEFAULT_REFERER = "https://creator.douyin.com/"
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

ACTION_APPLY_UPLOAD = "ApplyUploadInner"
ACTION_COMMIT_UPLOAD = "CommitUploadInner"

SIGNING_ALGORITHM = "AWS4-HMAC-SHA256"
SIGNING_TERMINATOR = "aws4_request"
SIGNING_KEY_CACHE_SIZE = 50

# Never part of SignedHeaders; still sent on the wire.
UNSIGNABLE_HEADERS = frozenset(
    {
        "cache-control",
        "content-type",
        "content-length",
        "expect",
        "max-forwards",
        "pragma",
        "range",
        "te",
        "if-match",
        "if-none-match",
        "if-modified-since",
        "if-unmodified-since",
        "if-range",
        "accept",
        "authorization",
        "proxy-authorization",
        "from",
        "referer",
        "user-agent",
        "proxy",
    }
)

HEADER_AMZ_DATE = "X-Amz-Date"
HEADER_SECURITY_TOKEN = "X-Amz-Security-Token"
HEADER_CONTENT_CRC32 = "Content-CRC32"
HEADER_STORAGE_USER = "X-Storage-U"
HEADER_STORAGE_MODE = "X-Storage-Mode"
HEADER_LOGICAL_PART_MODE = "X-Logical-Part-Mode"

CHUNK_SIZE = 5 * 1024 * 1024
SINGLE_UPLOAD_THRESHOLD = 5 * 1024 * 1024
DEFAULT_PART_ATTEMPTS = 3
DEFAULT_RETRY_DELAY = 0.8

DEFAULT_LOGGER_DIR = "./logs"

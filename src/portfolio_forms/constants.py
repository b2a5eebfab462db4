"""Form-engine constants shared across the SDK.

These values are referenced by the option parser, validator, navigator,
assembler and export projector.  The Korean user-facing messages mirror the
wording shown by the submission portal.

A few tunables can be overridden via environment variables so deployments
can adjust hashing cost or export layout without code changes.
"""

import os

# --- Question types ---
# ``textarea`` doubles as the compatibility default for questions stored
# without a type (and for unrecognised type strings).
QUESTION_TYPES: tuple[str, ...] = (
    "notice",
    "text",
    "textarea",
    "file",
    "checkbox",
    "repeatable",
    "agreement",
)
DEFAULT_QUESTION_TYPE = "textarea"

# Types whose stored answer is a plain string checked with trim semantics.
TEXT_TYPES: set[str] = {"text", "textarea"}

# Types whose ``options`` payload is parsed into a typed shape.
OPTION_TYPES: set[str] = {"checkbox", "repeatable"}

# Types that never hold an answer (display-only).
DISPLAY_ONLY_TYPES: set[str] = {"notice"}

# Types excluded from tabular export (URLs are not meaningful in a sheet).
EXPORT_EXCLUDED_TYPES: set[str] = {"file", "notice"}

# --- Step range used when a portfolio has no questions ---
# Callers treat this as the terminal "not configured" state.
DEFAULT_STEP_RANGE: tuple[int, int] = (1, 1)

# --- Validation messages (keyed by rule) ---
MSG_REQUIRED = "이 항목은 필수입니다."
MSG_MIN_LENGTH = "최소 {min_length}자 이상 입력해주세요."
MSG_REPEATABLE_REQUIRED = "최소 하나 이상 입력해주세요."
MSG_CHECKBOX_MULTI_REQUIRED = "하나 이상 선택해주세요."
MSG_CHECKBOX_SINGLE_REQUIRED = "항목을 선택해주세요."
MSG_AGREEMENT_REQUIRED = "동의가 필요합니다."
MSG_FILE_REQUIRED = "파일을 업로드해주세요."

# --- Configuration-error messages surfaced next to the free-text fallback ---
MSG_CHECKBOX_CONFIG_ERROR = "체크박스 설정 오류: 관리자에게 문의하세요."
MSG_REPEATABLE_CONFIG_ERROR = "반복 필드 설정 오류: 관리자에게 문의하세요."

# --- Identity messages ---
MSG_COMPANY_REQUIRED = "상호명을 입력해주세요."
MSG_PIN_INVALID = "4자리 숫자 비밀번호를 입력해주세요."
MSG_NOT_CONFIGURED = "아직 설정된 질문이 없습니다."

# PIN length for the anonymous identity path.
PIN_LENGTH = 4

# bcrypt cost factor for hashing PINs at rest.
# Overridable via PIN_HASH_ROUNDS env var.
PIN_HASH_ROUNDS = int(os.getenv("PIN_HASH_ROUNDS", "10"))

# --- Submission-scoped collections ---
# Applied when a portfolio declares no collections of its own, so legacy
# ``rooms`` payloads keep their export columns.
DEFAULT_COLLECTIONS: list[dict] = [
    {
        "key": "rooms",
        "label": "객실",
        "fields": [
            {"key": "name", "label": "명"},
            {"key": "desc", "label": "설명"},
            {"key": "type", "label": "형태"},
            {"key": "price", "label": "요금", "optional": True},
        ],
    },
]
ROOMS_KEY = "rooms"

# --- Export layout ---
EXPORT_SEQUENCE_HEADER = "순번"
EXPORT_COMPANY_HEADER = "상호명"
EXPORT_SHEET_TITLE = "제출목록"
EXPORT_AGREED_TEXT = "동의"
# Upper bound on a computed column width in the xlsx writer.
EXPORT_MAX_COLUMN_WIDTH = int(os.getenv("EXPORT_MAX_COLUMN_WIDTH", "60"))

# --- Client cache key scheme ---
CACHE_SUBMISSIONS_PREFIX = "submissions:"
CACHE_SEARCHED_PREFIX = "searched:"
CACHE_LAST_COMPANY_KEY = "lastCompanyName"
CACHE_ANONYMOUS = "anonymous"

# --- Admin roles accepted on export/listing endpoints ---
ADMIN_ROLES: set[str] = {"ADMIN", "SUPER_ADMIN"}

# --- Upload failure kinds ---
UPLOAD_FAILURES: tuple[str, ...] = ("unsupported_type", "too_large", "transient")

"""
External collaborators used by the workflow

Borrower lookup, notification dispatch, document storage and template
rendering live outside this service. Each is a Protocol with a simple default
implementation used in development and tests.
"""
import re
import threading
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol
from config.settings import settings
from src.utils.constants import CommunicationMode
from src.utils.exceptions import ExternalDependencyError, NotFoundError, ValidationError
from src.utils.helpers import generate_uuid, safe_filename
from src.utils.logger import get_logger

logger = get_logger(__name__)


# ============================================================================
# Borrower lookup
# ============================================================================

@dataclass
class BorrowerRecord:
    loan_account_number: str
    borrower_name: str
    email: Optional[str] = None
    mobile: Optional[str] = None
    address: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def recipient_for(self, channel: str) -> Optional[str]:
        """Contact detail used for a channel"""
        channel = CommunicationMode(channel)
        if channel == CommunicationMode.EMAIL:
            return self.email
        if channel == CommunicationMode.SMS:
            return self.mobile
        return self.address

    def template_context(self) -> Dict[str, Any]:
        context = {
            "loan_account_number": self.loan_account_number,
            "borrower_name": self.borrower_name,
            "email": self.email or "",
            "mobile": self.mobile or "",
            "address": self.address or "",
        }
        context.update(self.extra)
        return context


class BorrowerLookup(Protocol):
    def get_by_loan_account(self, account_number: str) -> Optional[BorrowerRecord]:
        ...


class InMemoryBorrowerLookup:
    """Dict-backed borrower directory"""

    def __init__(self, borrowers: Optional[List[BorrowerRecord]] = None):
        self._borrowers: Dict[str, BorrowerRecord] = {}
        for borrower in borrowers or []:
            self.add(borrower)

    def add(self, borrower: BorrowerRecord) -> None:
        self._borrowers[borrower.loan_account_number] = borrower

    def get_by_loan_account(self, account_number: str) -> Optional[BorrowerRecord]:
        return self._borrowers.get(account_number)


# ============================================================================
# Notification dispatch
# ============================================================================

@dataclass
class DispatchResult:
    success: bool
    provider_message_id: Optional[str] = None
    error: Optional[str] = None


class NotificationDispatch(Protocol):
    def send(self, channel: str, recipient: str, content: str) -> DispatchResult:
        ...


class LoggingNotificationDispatch:
    """
    Logs messages instead of sending them
    
    Channels listed in failing_channels report a failure, which lets tests
    drive the dispatch_failed transition.
    """

    def __init__(self, failing_channels: Optional[List[str]] = None):
        self.failing_channels = set(failing_channels or [])
        self.sent: List[Dict[str, Any]] = []
        self._lock = threading.Lock()

    def send(self, channel: str, recipient: str, content: str) -> DispatchResult:
        if channel in self.failing_channels:
            logger.warning(f"[dispatch] {channel} to {recipient} failed")
            return DispatchResult(success=False, error=f"{channel} provider rejected the message")
        if not recipient:
            return DispatchResult(success=False, error=f"no {channel} recipient on file")

        message_id = f"msg_{generate_uuid()[:12]}"
        with self._lock:
            self.sent.append({
                "channel": channel,
                "recipient": recipient,
                "content": content,
                "provider_message_id": message_id,
            })
        logger.info(f"[dispatch] {channel} to {recipient} ({message_id})")
        return DispatchResult(success=True, provider_message_id=message_id)


# ============================================================================
# Document storage
# ============================================================================

class DocumentStorage(Protocol):
    def store(self, content: bytes, metadata: Dict[str, Any]) -> str:
        ...

    def delete(self, path: str) -> bool:
        ...


class LocalDocumentStorage:
    """Writes documents under upload_dir/<category>/"""

    def __init__(self, root: Optional[str] = None, max_bytes: Optional[int] = None):
        self.root = Path(root or settings.upload_dir)
        self.max_bytes = max_bytes or settings.max_file_size_bytes

    def store(self, content: bytes, metadata: Dict[str, Any]) -> str:
        """
        Save content and return its path
        
        Args:
            content: file bytes
            metadata: "category" (sub-directory) and "filename"
        
        Raises:
            ValidationError: empty or oversized content
            ExternalDependencyError: the file could not be written
        """
        if not content:
            raise ValidationError("document is empty", "document")
        if len(content) > self.max_bytes:
            raise ValidationError(
                f"document exceeds {self.max_bytes // (1024 * 1024)} MB", "document"
            )

        category = safe_filename(str(metadata.get("category", "misc")))
        filename = safe_filename(str(metadata.get("filename", "document.bin")))
        stamp = datetime.utcnow().strftime("%Y%m%d%H%M%S")
        target = self.root / category / f"{stamp}_{generate_uuid()[:8]}_{filename}"
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(content)
        except OSError as e:
            logger.error(f"Document write failed: {target} - {str(e)}")
            raise ExternalDependencyError("document_storage", "could not store document") from e

        logger.info(f"Document stored: {target} ({len(content)} bytes)")
        return str(target)

    def delete(self, path: str) -> bool:
        """Remove a stored document; False if it was already gone or could not be removed"""
        target = Path(path)
        try:
            target.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.warning(f"Document delete failed: {target} - {str(e)}")
            return False
        logger.info(f"Document deleted: {target}")
        return True


# ============================================================================
# Template rendering
# ============================================================================

class TemplateRenderer(Protocol):
    def render(self, template_id: str, context: Dict[str, Any]) -> str:
        ...


_PLACEHOLDER_RE = re.compile(r"\{\{\s*([A-Za-z0-9_]+)\s*\}\}")


class StaticTemplateRenderer:
    """{{placeholder}} substitution over an in-memory template set"""

    def __init__(self, templates: Optional[Dict[str, str]] = None):
        self.templates = dict(templates or {})

    def render(self, template_id: str, context: Dict[str, Any]) -> str:
        template = self.templates.get(template_id)
        if template is None:
            raise NotFoundError("template", template_id)
        # unknown placeholders are left visible for review
        return _PLACEHOLDER_RE.sub(
            lambda m: str(context.get(m.group(1), m.group(0))), template
        )


DEFAULT_TEMPLATES: Dict[str, str] = {
    "PRE_LEGAL_DEFAULT": (
        "Dear {{borrower_name}},\n"
        "Your loan account {{loan_account_number}} is overdue by {{dpd_days}} days. "
        "Please clear the outstanding dues by {{notice_expiry_date}} to avoid legal action.\n"
        "Notice reference: {{notice_code}}\n"
        "{{legal_entity_name}}"
    ),
    "LEGAL_DEFAULT": (
        "Dear {{borrower_name}},\n"
        "Despite earlier reminders, loan account {{loan_account_number}} remains unpaid "
        "({{dpd_days}} days past due). Legal proceedings will be initiated if the dues are "
        "not settled by {{notice_expiry_date}}.\n"
        "Notice reference: {{notice_code}}\n"
        "{{legal_entity_name}}"
    ),
}

"""
Preview Manager
Tracks the latest preview URL reported for each session
"""

from datetime import datetime, timezone
from typing import Dict, Any, Optional


class PreviewManager:
    """Remembers where each session's dev server can be reached"""

    def __init__(self):
        self.active_previews: Dict[str, Dict[str, Any]] = {}

    def record_preview(self, session_id: str, preview_url: str, ready: bool) -> Dict[str, Any]:
        """
        Record the preview URL of the latest attempt. A failed attempt still
        records its URL so a partially working server can be inspected.
        """
        entry = {
            "url": preview_url,
            "updated_at": datetime.now(timezone.utc).isoformat(),
            "status": "ready" if ready else "failing",
        }
        self.active_previews[session_id] = entry
        return {"success": True, "session_id": session_id, "preview_url": preview_url, **entry}

    def get_preview(self, session_id: str) -> Optional[Dict[str, Any]]:
        return self.active_previews.get(session_id)

    def stop_preview(self, session_id: str) -> Dict[str, Any]:
        """Stop tracking a preview"""
        if session_id not in self.active_previews:
            return {"success": False, "error": f"Preview {session_id} not found"}

        del self.active_previews[session_id]
        return {"success": True, "session_id": session_id}

    def list_previews(self) -> Dict[str, Any]:
        """List all tracked preview URLs"""
        previews = {sid: info for sid, info in self.active_previews.items()}
        return {"success": True, "previews": previews, "count": len(previews)}

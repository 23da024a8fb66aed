# clearing_ui/api/reuser.py
import re
from datetime import timezone
from typing import Any, Dict, List, Optional, Tuple
from zoneinfo import ZoneInfo

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from fastapi.responses import FileResponse, JSONResponse, PlainTextResponse
from loguru import logger

from .. import deps
from ..core.config import Settings, get_settings
from ..domain.models import FolderStructure, Session, UploadEntry
from ..domain.stores import FolderStore
from ..util.osselot import OsselotLookupHelper
from .auth import require_session

router = APIRouter()

REUSE_FOLDER_SELECTOR_NAME = "reuseFolderSelectorName"
UPLOAD_TO_REUSE_SELECTOR_NAME = "uploadToReuse"
FOLDER_PARAMETER_NAME = "folder"

_ARCHIVE_SUFFIX = re.compile(
    r"\.(tar\.gz|tar\.bz2|tar\.xz|tgz|tbz2|txz|tar|zip|gz|bz2|xz|7z|jar|rpm|deb)$",
    re.IGNORECASE,
)


def default_package_name(upload_filename: Optional[str], fallback: str) -> str:
    """
    Guess the OSSelot package name from an upload filename by dropping
    archive suffixes, e.g. "zlib-1.3.tar.gz" -> "zlib-1.3".
    """
    if not upload_filename:
        return fallback
    name = upload_filename.strip().rsplit("/", 1)[-1]
    name = _ARCHIVE_SUFFIX.sub("", name)
    return name or fallback


class ReuserPanel:
    """
    Backs the "reuse clearing decisions" panel: the two AJAX lookups and the
    view models of the panel and its script fragment.
    """

    def __init__(
        self,
        folders: FolderStore,
        lookup: OsselotLookupHelper,
        session: Session,
        settings: Optional[Settings] = None,
    ):
        self.folders = folders
        self.lookup = lookup
        self.session = session
        self.settings = settings or get_settings()

    def handle(
        self,
        do: Optional[str],
        folder: str = "",
        pkg: Optional[str] = None,
        osselot_package: Optional[str] = None,
    ) -> Response:
        self.folders.ensure_top_level_folder()

        if do == "getUploads":
            fid, tgid = self.get_folder_id_and_trust_group(folder)
            if not fid or not tgid:
                uploads = self.get_all_uploads()
            else:
                uploads = self.prepare_folder_uploads(fid, tgid)
            return JSONResponse(uploads)

        if do == "getOsselotVersions":
            return JSONResponse(self.get_osselot_versions(pkg, osselot_package))

        return PlainTextResponse("called without valid method", status_code=405)

    def get_osselot_versions(
        self, pkg: Optional[str], osselot_package: Optional[str] = None
    ) -> List[str]:
        name = (pkg if pkg is not None else osselot_package or "").strip()
        if not name:
            return []
        try:
            return self.lookup.get_versions(name)
        except Exception:
            logger.exception("OSSelot version lookup raised for {}", name)
            return []

    def render_content(self, view: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Fill ``view`` with the panel view model. Returns None when the session
        has no folder to reuse from, meaning nothing should be shown.
        """
        if view.get("folderStructure") is None:
            root = self.folders.get_root_folder(self.session.user_id)
            view["folderStructure"] = self.folders.get_folder_structure(root.id)
        structure: FolderStructure = view["folderStructure"]
        if self.folders.is_without_reusable_folders(structure):
            return None

        fid, tgid = self.get_folder_id_and_trust_group(
            view.get(FOLDER_PARAMETER_NAME) or ""
        )
        if not fid and structure:
            fid = structure[0].folder.id

        view.update(self._selector_names())
        view["folderUploads"] = self.prepare_folder_uploads(fid, tgid)
        view["osselotAvailable"] = True
        view["defaultPkgName"] = default_package_name(
            view.get("uploadFilename"), self.settings.DEFAULT_PACKAGE_NAME
        )
        view["userIsAdmin"] = self.session.is_admin
        return view

    def render_foot(self, view: Dict[str, Any]) -> Dict[str, Any]:
        view.update(self._selector_names())
        view["osselotAvailable"] = True
        return view

    @staticmethod
    def _selector_names() -> Dict[str, str]:
        return {
            "reuseFolderSelectorName": REUSE_FOLDER_SELECTOR_NAME,
            "folderParameterName": FOLDER_PARAMETER_NAME,
            "uploadToReuseSelectorName": UPLOAD_TO_REUSE_SELECTOR_NAME,
        }

    def get_all_uploads(self) -> Dict[str, str]:
        out: Dict[str, str] = {}
        for fid in self.folders.get_all_folder_ids():
            out.update(self.prepare_folder_uploads(fid))
        return out

    def prepare_folder_uploads(
        self, folder_id: int, trust_group_id: Optional[int] = None
    ) -> Dict[str, str]:
        if trust_group_id is None:
            trust_group_id = self.session.group_id
        return {
            f"{up.id},{up.group_id}": self.upload_label(up)
            for up in self.folders.get_folder_uploads(folder_id, trust_group_id)
        }

    def upload_label(self, upload: UploadEntry) -> str:
        ts = upload.timestamp
        if ts.tzinfo is None:
            ts = ts.replace(tzinfo=timezone.utc)
        local = ts.astimezone(ZoneInfo(self.settings.DISPLAY_TIMEZONE))
        return f"{upload.filename} from {local:%Y-%m-%d %H:%M:%S} ({upload.status})"

    def get_folder_id_and_trust_group(self, pair: str) -> Tuple[int, int]:
        """Split "folderId,trustGroupId"; anything else means no folder."""
        parts = str(pair).split(",", 1)
        if len(parts) == 2:
            try:
                return int(parts[0]), int(parts[1])
            except ValueError:
                pass
        return 0, self.session.group_id


def get_reuser_panel(
    session: Session = Depends(require_session),
    folders: FolderStore = Depends(deps.get_folder_store),
    lookup: OsselotLookupHelper = Depends(deps.get_osselot_helper),
) -> ReuserPanel:
    return ReuserPanel(folders, lookup, session)


@router.get("/reuser")
def reuser_ajax(
    do: Optional[str] = None,
    folder: str = Query(default="", alias=FOLDER_PARAMETER_NAME),
    pkg: Optional[str] = None,
    osselot_package: Optional[str] = Query(default=None, alias="osselotPackage"),
    panel: ReuserPanel = Depends(get_reuser_panel),
) -> Response:
    return panel.handle(do, folder, pkg, osselot_package)


@router.get("/reuser/panel")
def reuser_panel(
    folder: Optional[str] = Query(default=None, alias=FOLDER_PARAMETER_NAME),
    upload_filename: Optional[str] = Query(default=None, alias="uploadFilename"),
    panel: ReuserPanel = Depends(get_reuser_panel),
):
    view: Dict[str, Any] = {
        FOLDER_PARAMETER_NAME: folder,
        "uploadFilename": upload_filename,
    }
    content = panel.render_content(view)
    if content is None:
        return Response(status_code=204)
    content["folderStructure"] = [
        node.model_dump() for node in content["folderStructure"]
    ]
    return content


@router.get("/reuser/panel/foot")
def reuser_panel_foot(panel: ReuserPanel = Depends(get_reuser_panel)):
    return panel.render_foot({})


@router.get("/reuser/osselot/{pkg}/{version}")
def osselot_spdx_file(
    pkg: str,
    version: str,
    session: Session = Depends(require_session),
    lookup: OsselotLookupHelper = Depends(deps.get_osselot_helper),
):
    path = lookup.fetch_spdx_file(pkg, version)
    if path is None:
        raise HTTPException(status_code=404, detail="No OSSelot data for this version.")
    return FileResponse(path, media_type="application/rdf+xml", filename=path.name)


@router.delete("/reuser/osselot/cache")
def clear_osselot_cache(
    session: Session = Depends(require_session),
    lookup: OsselotLookupHelper = Depends(deps.get_osselot_helper),
) -> Dict[str, str]:
    """
    Drop all cached OSSelot SPDX files. Admin only.
    """
    if not session.is_admin:
        raise HTTPException(
            status_code=403, detail="Admin privileges required to clear the cache"
        )
    lookup.clear_cache()
    return {"message": "OSSelot cache cleared"}

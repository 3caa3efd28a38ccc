"""
Page Routes.

The root URL hands out a path; any other single-segment URL serves the
editor shell for that path. The shell is a minimal page that talks to
the public note API and carries no styling of its own.
"""

import html

from fastapi import APIRouter
from fastapi.responses import HTMLResponse, RedirectResponse

from cloudnote.core.dependencies import NoteServiceDep, PathPolicyDep
from cloudnote.core.exceptions import NotFoundError
from cloudnote.core.logging import get_logger

router = APIRouter()
logger = get_logger(__name__)

EDITOR_SHELL = """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{title} - CloudNote</title>
</head>
<body>
  <main id="editor" data-path="{path}" data-api="/api/note/{path}">
    <div id="content" contenteditable="true"></div>
  </main>
  <script>
    const editor = document.getElementById("editor");
    const content = document.getElementById("content");
    fetch(editor.dataset.api, {{headers: {{"X-Frontend-ID": "web"}}}})
      .then((response) => response.json())
      .then((note) => {{
        if (note.exists && !note.requires_password) {{
          content.innerHTML = note.content;
        }}
      }});
  </script>
</body>
</html>
"""


@router.get("/", include_in_schema=False)
async def root(service: NoteServiceDep) -> RedirectResponse:
    """Redirect to the newest blank note or a fresh random path."""
    path, reused = await service.allocate_path()
    logger.debug("Root visit allocated path", extra={"path": path, "reused": reused})
    return RedirectResponse(url=f"/{path}", status_code=302)


@router.get("/{path}", include_in_schema=False, response_class=HTMLResponse)
async def editor_page(path: str, path_policy: PathPolicyDep) -> HTMLResponse:
    """Editor shell for path."""
    if path_policy.is_reserved(path):
        raise NotFoundError("Page not found")
    path_policy.validate(path)
    safe = html.escape(path, quote=True)
    return HTMLResponse(EDITOR_SHELL.format(title=safe, path=safe))

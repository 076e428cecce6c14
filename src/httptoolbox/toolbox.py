"""
=============================================================================
TOOLBOX
=============================================================================

One object that carries a ToolboxConfig and exposes every helper as a
method, so a handler needs a single import:

    from httptoolbox import Toolbox, ToolboxConfig

    tools = Toolbox(ToolboxConfig(max_upload_size=5 * 1024 * 1024,
                                  allowed_upload_types=("image/png", "image/jpeg")))

    def create_user(request):
        try:
            user = tools.read_json(request, CreateUser)
        except ToolboxError as e:
            return tools.error_json(e, status=e.status_code)
        ...
        return tools.write_json(201, Envelope(message="created", data=user))

The module level functions (httptoolbox.body.read_json, ...) remain usable
on their own; the Toolbox only supplies its config to them.

=============================================================================
"""

import os
from http import HTTPStatus
from typing import Any, Dict, List, Mapping, Optional, Tuple

import httpx

from . import body, files, remote, sql_queries, text, uploads
from .config import ToolboxConfig
from .http.request import HTTPRequest
from .http.response import HTTPResponse
from .uploads import UploadedFile


class Toolbox:
    """
    Request/response helpers bound to one configuration.

    The configuration is frozen; use `with_config(...)` for a variant with
    different limits (e.g. a bigger upload limit on one endpoint).
    """

    def __init__(self, config: Optional[ToolboxConfig] = None):
        self.config = config or ToolboxConfig()

    def with_config(self, **changes) -> "Toolbox":
        return Toolbox(self.config.replace(**changes))

    def __repr__(self) -> str:
        return f"Toolbox({self.config!r})"

    # =========================================================================
    # BODIES
    # =========================================================================

    def read_json(self, request: HTTPRequest, target: Any) -> Any:
        return body.read_json(request, target, self.config)

    def read_xml(self, request: HTTPRequest, target: Any) -> Any:
        return body.read_xml(request, target, self.config)

    def write_json(
        self,
        status: int,
        data: Any,
        headers: Optional[Mapping[str, str]] = None,
        response: Optional[HTTPResponse] = None,
    ) -> HTTPResponse:
        return body.write_json(status, data, headers, response)

    def write_xml(
        self,
        status: int,
        data: Any,
        headers: Optional[Mapping[str, str]] = None,
        response: Optional[HTTPResponse] = None,
        root: Optional[str] = None,
    ) -> HTTPResponse:
        return body.write_xml(status, data, headers, response, root)

    def error_json(
        self,
        error: BaseException,
        status: Optional[int] = HTTPStatus.BAD_REQUEST,
        response: Optional[HTTPResponse] = None,
    ) -> HTTPResponse:
        return body.error_json(error, status, response)

    def error_xml(
        self,
        error: BaseException,
        status: Optional[int] = HTTPStatus.BAD_REQUEST,
        response: Optional[HTTPResponse] = None,
    ) -> HTTPResponse:
        return body.error_xml(error, status, response)

    # =========================================================================
    # FILES
    # =========================================================================

    def upload_files(
        self, request: HTTPRequest, upload_dir: str | os.PathLike, rename: bool = True
    ) -> List[UploadedFile]:
        return uploads.upload_files(request, upload_dir, self.config, rename)

    def upload_one_file(
        self, request: HTTPRequest, upload_dir: str | os.PathLike, rename: bool = True
    ) -> UploadedFile:
        return uploads.upload_one_file(request, upload_dir, self.config, rename)

    def download_static_file(
        self, request: HTTPRequest, directory: str | os.PathLike, file: str, display_name: str
    ) -> HTTPResponse:
        return files.download_static_file(request, directory, file, display_name)

    def create_dir_if_not_exist(self, path: str | os.PathLike) -> None:
        files.create_dir_if_not_exist(path)

    # =========================================================================
    # TEXT, NETWORK, SQL
    # =========================================================================

    def random_string(self, n: int) -> str:
        return text.random_string(n)

    def slugify(self, s: str) -> str:
        return text.slugify(s)

    def push_json_to_remote(
        self, uri: str, data: Any, client: Optional[httpx.Client] = None
    ) -> Tuple[httpx.Response, int]:
        return remote.push_json_to_remote(uri, data, client)

    def load_sql_queries(self, path: str | os.PathLike) -> Dict[str, str]:
        return sql_queries.load_sql_queries(path, strict=self.config.strict_sql)

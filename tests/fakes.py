import httpx


class FakeNewAPI:
    """In-process stand-in for a New API server, served through httpx.MockTransport.

    Log pages are sliced from `today_logs` (requests carrying a time window)
    or `all_logs` (requests without one). `reported_total` overrides the
    `total` the server claims; `log_page_fn(page, params)` overrides paging
    altogether and returns `(items, total)` or an httpx.Response.
    """

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.profile_token: str | None = "token-from-profile"
        self.profile_token_fn = None  # request -> token, overrides profile_token
        self.created_token: str | None = "token-created"
        self.balance: int | None = 1_000_000
        self.balance_response: httpx.Response | None = None  # replaces the bearer /api/user/self reply
        self.today_logs: list[dict] = []
        self.all_logs: list[dict] = []
        self.reported_total: int | None = None
        self.log_page_fn = None
        # path -> httpx.Response or exception returned instead of the normal payload
        self.overrides: dict[str, object] = {}

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        override = self.overrides.get(path)
        if isinstance(override, Exception):
            raise override
        if override is not None:
            return override

        if path == "/api/user/self":
            if request.headers.get("Authorization"):
                return self.balance_response or ok({"quota": self.balance})
            token = self.profile_token_fn(request) if self.profile_token_fn else self.profile_token
            return ok({"id": 42, "username": "alice", "access_token": token})
        if path == "/api/user/token":
            return ok(self.created_token)
        if path == "/api/log/self":
            return self._log_page(request)
        return httpx.Response(404)

    def _log_page(self, request: httpx.Request) -> httpx.Response:
        params = request.url.params
        page = int(params["p"])
        page_size = int(params["page_size"])

        if self.log_page_fn is not None:
            result = self.log_page_fn(page, params)
            if isinstance(result, httpx.Response):
                return result
            items, total = result
        else:
            logs = self.today_logs if "start_timestamp" in params else self.all_logs
            items = logs[(page - 1) * page_size: page * page_size]
            total = len(logs) if self.reported_total is None else self.reported_total

        return ok({"items": items, "total": total, "page": page, "page_size": page_size})

    def requests_to(self, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == path]

    def log_requests(self, windowed: bool | None = None) -> list[httpx.Request]:
        reqs = self.requests_to("/api/log/self")
        if windowed is None:
            return reqs
        return [r for r in reqs if ("start_timestamp" in r.url.params) == windowed]


def ok(data) -> httpx.Response:
    return httpx.Response(200, json={"success": True, "data": data, "message": ""})


def log_item(quota=0, prompt_tokens=0, completion_tokens=0, **extra) -> dict:
    return {"quota": quota, "prompt_tokens": prompt_tokens, "completion_tokens": completion_tokens, **extra}

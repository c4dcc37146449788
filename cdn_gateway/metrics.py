from collections import Counter


class RequestMetrics:
    """Process-local request counters exposed in Prometheus text format."""

    def __init__(self):
        self.total_requests = 0
        self.total_errors = 0
        self.requests_by_method: Counter[str] = Counter()

    def record_request(self, method: str) -> None:
        self.total_requests += 1
        self.requests_by_method[method] += 1

    def record_error(self) -> None:
        self.total_errors += 1

    def render(self) -> str:
        lines = [
            "# HELP cdn_requests_total Total number of requests",
            "# TYPE cdn_requests_total counter",
            f"cdn_requests_total {self.total_requests}",
            "",
            "# HELP cdn_errors_total Total number of errors",
            "# TYPE cdn_errors_total counter",
            f"cdn_errors_total {self.total_errors}",
            "",
            "# HELP cdn_requests_by_method Requests by HTTP method",
            "# TYPE cdn_requests_by_method counter",
        ]
        lines.extend(
            f'cdn_requests_by_method{{method="{method}"}} {count}'
            for method, count in sorted(self.requests_by_method.items())
        )
        return "\n".join(lines) + "\n"

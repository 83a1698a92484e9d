"""Browser dashboard — a static page that polls /processed on a timer."""

from __future__ import annotations

from string import Template

from fastapi import APIRouter, Depends
from fastapi.responses import HTMLResponse

from expvardash.api.deps import get_app_settings
from expvardash.config import Settings

router = APIRouter(tags=["dashboard"])

_DASHBOARD_TEMPLATE = Template("""<!doctype html>
<html>
    <head>
        <meta charset="utf-8">
        <title>Expvar Dashboard</title>
        <meta name="description" content="A minimal dashboard for monitoring applications that publish expvar data">
        <script>
            var expvarHOST = window.location.hostname || "localhost";
            var expvarPORT = "$port";
            var refreshMs = $refresh_ms;
            function updateData(host, port) {
                var req = new XMLHttpRequest();
                req.onreadystatechange = function() {
                    if (req.readyState == 4) {
                        var el = document.getElementById("expvar");
                        el.textContent = req.responseText;
                        el.className = req.status == 200 ? "ok" : "error";
                    }
                };
                req.open("GET", "http://" + host + ":" + port + "/processed", true);
                req.send(null);
            }
            setInterval(function() { updateData(expvarHOST, expvarPORT); }, refreshMs);
        </script>
        <style>
            body { font-family: -apple-system, sans-serif; margin: 2em; }
            #expvar { white-space: pre; font-family: monospace; }
            #expvar.error { color: #dc2626; }
        </style>
    </head>
    <body>
        <p>Monitoring Dashboard</p>
        <p id="expvar"> </p>
    </body>
</html>
""")


def render_dashboard(port: int, refresh_ms: int = 2000) -> str:
    return _DASHBOARD_TEMPLATE.substitute(port=int(port), refresh_ms=int(refresh_ms))


@router.get("/dash", response_class=HTMLResponse)
async def dashboard(settings: Settings = Depends(get_app_settings)):
    return HTMLResponse(render_dashboard(settings.port, settings.dashboard_refresh_ms))

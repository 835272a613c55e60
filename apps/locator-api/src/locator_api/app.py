from __future__ import annotations

from devkit.config import load_settings
from devkit.observability import configure_logging, configure_otel, configure_probe_access_log_filter
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import HTMLResponse, JSONResponse, Response

from locator_api.dependencies import get_search_metrics
from locator_api.errors import ApiError
from locator_api.middleware import ObservabilityMiddleware
from locator_api.observability import (
    CompositeApiMetricsCollector,
    InMemoryApiMetricsCollector,
    PrometheusApiMetricsCollector,
    SearchPrometheusExporter,
)
from locator_api.response import error_response, success_response
from locator_api.routers.hospitals import router as hospitals_router

SERVICE_NAME = "hospital-locator-api"

SEARCH_PAGE = """
<!doctype html>
<html lang="en">
  <head>
    <meta charset="UTF-8" />
    <meta name="viewport" content="width=device-width, initial-scale=1.0" />
    <title>Nearby Hospitals</title>
    <style>
      body { font-family: sans-serif; max-width: 960px; margin: 24px auto; padding: 0 12px; }
      .search { display: grid; grid-template-columns: 1fr auto; gap: 8px; }
      input, button { padding: 8px; }
      button { cursor: pointer; }
      #status, .status { color: #444; }
      #results { display: grid; grid-template-columns: repeat(auto-fill, minmax(280px, 1fr)); gap: 12px; }
      .card { border: 1px solid #ddd; border-radius: 8px; padding: 12px; }
      .card img { width: 100%; border-radius: 4px; }
      .meta { color: #666; font-size: 13px; }
      .link { margin-right: 12px; }
    </style>
  </head>
  <body>
    <h1>Find hospitals near a tourist place</h1>
    <div class="search">
      <input id="placeInput" placeholder="e.g. Meenakshi Temple, Madurai" />
      <button id="searchBtn">Search</button>
    </div>
    <p id="status"></p>
    <div id="results"></div>

    <script>
      const searchBtn = document.getElementById("searchBtn");
      const placeInput = document.getElementById("placeInput");
      const resultsDiv = document.getElementById("results");
      const statusP = document.getElementById("status");
      let searchGeneration = 0;

      searchBtn.addEventListener("click", searchHospitals);
      placeInput.addEventListener("keydown", (e) => { if (e.key === "Enter") searchHospitals(); });

      function applyEvent(event) {
        if (event.type === "status") {
          statusP.textContent = event.message;
        } else if (event.type === "result") {
          statusP.textContent = event.message;
          resultsDiv.innerHTML = event.html;
        } else if (event.type === "error") {
          statusP.textContent = event.message;
        }
      }

      async function searchHospitals() {
        const generation = ++searchGeneration;
        const place = (placeInput.value || "").trim();
        resultsDiv.innerHTML = "";
        statusP.textContent = "";
        try {
          const res = await fetch(`/v1/hospitals/search/stream?place=${encodeURIComponent(place)}`);
          const reader = res.body.getReader();
          const decoder = new TextDecoder();
          let buffer = "";
          while (true) {
            const { value, done } = await reader.read();
            if (done) break;
            buffer += decoder.decode(value, { stream: true });
            let newline;
            while ((newline = buffer.indexOf("\\n")) >= 0) {
              const line = buffer.slice(0, newline).trim();
              buffer = buffer.slice(newline + 1);
              if (!line) continue;
              if (generation !== searchGeneration) return;
              applyEvent(JSON.parse(line));
            }
          }
        } catch (err) {
          console.error(err);
          if (generation === searchGeneration) {
            statusP.textContent = "An error occurred while searching. Please try again.";
          }
        }
      }
    </script>
  </body>
</html>
"""


def create_app() -> FastAPI:
    settings = load_settings(SERVICE_NAME)
    configure_logging(settings.LOG_LEVEL)
    configure_otel(service_name=settings.SERVICE_NAME)
    configure_probe_access_log_filter()

    app = FastAPI(title="Hospital Locator API", version="0.1.0")
    app.state.api_metrics = InMemoryApiMetricsCollector()
    app.state.prom_metrics = PrometheusApiMetricsCollector()
    app.state.search_exporter = SearchPrometheusExporter()
    app.state.composite_metrics = CompositeApiMetricsCollector(
        [app.state.api_metrics, app.state.prom_metrics]
    )
    app.add_middleware(ObservabilityMiddleware, collector=app.state.composite_metrics)
    app.include_router(hospitals_router)

    @app.get("/", response_class=HTMLResponse)
    async def search_page() -> str:
        return SEARCH_PAGE

    @app.get("/healthz")
    async def healthz() -> dict:
        return success_response({"status": "ok"}, meta={})

    @app.get("/readyz")
    async def readyz() -> dict:
        return success_response({"status": "ready"}, meta={})

    @app.get("/metrics")
    async def metrics() -> Response:
        payload = app.state.prom_metrics.render() + app.state.search_exporter.render(get_search_metrics())
        return Response(content=payload, media_type="text/plain; version=0.0.4")

    @app.exception_handler(ApiError)
    async def handle_api_error(_: Request, exc: ApiError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=error_response(exc.code, exc.message))

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(_: Request, exc: RequestValidationError) -> JSONResponse:
        message = "; ".join(err["msg"] for err in exc.errors())
        return JSONResponse(
            status_code=422,
            content=error_response("VALIDATION_ERROR", message),
        )

    return app


app = create_app()

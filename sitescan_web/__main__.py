from sitescan_web.app_factory import create_app

if __name__ == "__main__":
    app = create_app()
    app.run(host=app.config["HOST"], port=app.config["PORT"], debug=app.config["DEBUG"], threaded=True)

#############################
#
# Key design patterns used
# •	Application Factory: create_app() builds the app and dependencies.
# •	Dependency Injection (manual): fetcher, scanner, session and orchestrator are passed in, never imported as globals.
# •	Service Layer: ChatService owns the "scan a URL" and "answer a message" use cases.
# •	Repository: JsonStateRepository persists the session; the stores own their collections.
# •	Strategy: UrlNormalizer, Forwarding, ApprovalPolicy and the intent rules are swappable.
# •	Registry: ToolOrchestrator dispatches ToolCalls by name to ToolDefinitions.
######################################################################
# High-level architecture
#
#    Presentation (Flask JSON blueprint)
#       |
#       v
#    ChatService  --->  KeywordIntentClassifier
#       |                    |
#       v                    v
#    ScanSession  <---  ToolOrchestrator ---> AnalysisTools
#       |                                        |
#       v                                        v
#    JsonStateRepository                   PageScanner ---> RequestsDocumentFetcher ---> the website
# ________________________________________
# Directory layout and responsibilities
# •	sitescan_web/app_factory.py: composition root. Reads AppSettings, sets up logging, wires everything,
#   restores the saved session, registers the blueprint.
# •	sitescan_web/config/: ini_config.py (INI -> AppSettings, APP_INI override) and logging_setup.py.
# •	sitescan_web/domain/: frozen dataclasses (ScanResult, SEOData, Asset, ToolCall, ChatMessage ...),
#   domain errors, and the JSON form of each record. No Flask, no network.
# •	sitescan_web/adapters/fetch_requests.py: requests.Session with retries, linear backoff,
#   rotating User-Agent and optional forwarding prefix.
# •	sitescan_web/services/:
#   document_model.py + page_analyzer.py  parse with BeautifulSoup and extract links/assets/SEO data
#   page_scanner.py                       fetch -> parse -> analyze, progress checkpoints, sequential scans
#   scan_session.py                       owner of scan results, assets, conversation and the stop flag
#   intent_classifier.py                  ordered keyword rules -> ToolRequest
#   tool_orchestrator.py                  ToolCall state machine + approval policies
#   analysis_tools.py                     the ten analysis handlers
#   chat_service.py                       chat and scan use cases
#   url_normalization.py                  user input -> absolute http(s) URL
# •	sitescan_web/repositories/: asset registry, scan result store, conversation store, JSON state file.
# •	sitescan_web/web/routes.py: HTTP endpoints only. One lock serializes scan/chat turns;
#   /scan/stop does not take it.
# ________________________________________
# Runtime request flow
# •	POST /scan {"url": "example.com"}
#   ChatService.scan_url normalizes -> PageScanner.scan_page -> ScanSession.record_scan
#   -> summary message appended -> state saved
# •	POST /chat {"message": "check my seo"}
#   classifier picks performSeoAnalysis -> ToolCall submitted -> policy approves (or defers)
#   -> handler runs -> result message appended -> state saved
# •	POST /tools/<id>/approve | /decline for calls deferred by the manual approval policy
# ________________________________________

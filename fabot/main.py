import logging
from fastapi import FastAPI, HTTPException, Depends, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from dotenv import load_dotenv

# Load env before imports that might need it
load_dotenv()

from fabot.core.config import Settings, get_settings
from fabot.core.errors import FabotError, GatewayError
from fabot.core.logging_config import setup_logging
from fabot.schemas import AnalyzeRequest, ChatRequest, ChatResponse, ConversationAnalysis
from fabot.services.analysis_service import analyze_conversation
from fabot.services.chat_service import InvalidChatRequest, proxy_chat
from fabot.services.llm_service import CompletionGateway, get_gateway

settings = get_settings()
setup_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

app = FastAPI(title="FABOT - Chat API")

ANALYSIS_FAILED = "Failed to analyze conversation"


CORS_HEADERS = {
    "Access-Control-Allow-Credentials": "true",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization, x-requested-with",
    "Access-Control-Expose-Headers": "X-Analysis-Status, X-Analysis-Degraded-Reason",
}


@app.middleware("http")
async def cors_handler(request: Request, call_next):
    if request.method == "OPTIONS":
        response = Response()
    else:
        try:
            response = await call_next(request)
        except Exception:
            logger.exception("Unhandled error on %s", request.url.path)
            response = JSONResponse(status_code=500, content={"error": "Internal Server Error"})

    response.headers.update(CORS_HEADERS)
    response.headers["Access-Control-Allow-Origin"] = request.headers.get("origin") or "*"
    return response


@app.exception_handler(FabotError)
async def fabot_error_handler(request: Request, exc: FabotError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    logger.warning("Invalid request body on %s: %s", request.url.path, exc.errors())
    # The analysis endpoint only ever reports total failure
    if request.url.path == "/analyze":
        return JSONResponse(status_code=500, content={"error": ANALYSIS_FAILED})
    return JSONResponse(status_code=400, content={"error": "Invalid request body"})


@app.get("/")
def health_check():
    return {"status": "ok", "system": settings.APP_NAME}


@app.post("/chat", response_model=ChatResponse, response_model_exclude_none=True)
def chat_endpoint(
    request: ChatRequest,
    gateway: CompletionGateway = Depends(get_gateway),
    config: Settings = Depends(get_settings),
):
    try:
        return proxy_chat(request.messages, gateway, config, model=request.model)
    except InvalidChatRequest as e:
        raise HTTPException(status_code=400, detail=str(e))


@app.post("/analyze", response_model=ConversationAnalysis)
def analyze_endpoint(
    request: AnalyzeRequest,
    response: Response,
    gateway: CompletionGateway = Depends(get_gateway),
    config: Settings = Depends(get_settings),
):
    try:
        outcome = analyze_conversation(request.messages, gateway, config, language=request.language)
    except GatewayError as e:
        logger.error("Error analyzing conversation: %s", e.message)
        return JSONResponse(status_code=500, content={"error": ANALYSIS_FAILED, "details": e.message})

    if outcome.degraded:
        response.headers["X-Analysis-Status"] = "degraded"
        response.headers["X-Analysis-Degraded-Reason"] = outcome.reason
    else:
        response.headers["X-Analysis-Status"] = "ok"
    return outcome.analysis

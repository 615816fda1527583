"""FastAPI application exposing the onboarding, OPEX and AI suggestion APIs."""

from typing import Dict

from fastapi import FastAPI, HTTPException

from app.api.routes.ai import router as ai_router
from app.api.routes.onboarding import router as onboarding_router
from app.api.routes.opex import router as opex_router
from app.config.supabase_client import SUPABASE_ANON_KEY, SUPABASE_URL

app = FastAPI(title="F&B Business Planner")
app.include_router(onboarding_router)
app.include_router(opex_router)
app.include_router(ai_router)


@app.get("/health")
def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.get("/api/config")
def supabase_config() -> Dict[str, str]:
    if not SUPABASE_URL or not SUPABASE_ANON_KEY:
        raise HTTPException(status_code=500, detail="Supabase configuration missing.")
    return {"supabaseUrl": SUPABASE_URL, "supabaseAnonKey": SUPABASE_ANON_KEY}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app.main:app", host="127.0.0.1", port=8000, reload=True)

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.api.routes.hansard import router as hansard_router
from src.api.routes.summaries import router as summaries_router

app = FastAPI(
    title="Hansard Digest API",
    description="Structured parliamentary transcripts and map-reduce AI summaries",
    version="0.1.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
    ],
    allow_origin_regex=r"https://.*\.vercel\.app|http://localhost:\d+",
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(hansard_router)
app.include_router(summaries_router)


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "healthy"}

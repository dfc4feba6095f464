import logging

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from .config import LOG_LEVEL
from .routers import generations, relay

logging.basicConfig(level=LOG_LEVEL)

app = FastAPI(title="LiblibAI Workflow Service")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# include routers
app.include_router(relay.router)
app.include_router(generations.router)

@app.get("/")
def root():
    return {"ok": True}

if __name__ == "__main__":
    uvicorn.run("liblib.main:app", host="0.0.0.0", port=8000, reload=True)

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from newsdrip.config import settings

def setup_cors(app: FastAPI):
    """Configure CORS for the application"""
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[
            settings.frontend_url,
            "http://localhost:3000",  # React dev server
            "http://localhost:5173",  # Vite dev server
        ],
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["*"]
    )

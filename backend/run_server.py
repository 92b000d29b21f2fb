"""
Development server runner
"""
import uvicorn

from llm_mail.config import settings

if __name__ == "__main__":
    uvicorn.run(
        "llm_mail.main:app",
        host=settings.host,
        port=settings.port,
        reload=True
    )

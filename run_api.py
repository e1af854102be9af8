# Run FastAPI server
# Usage: uvicorn course_recommender.main:app --host 0.0.0.0 --port 8000 --reload

import uvicorn

from course_recommender.core.config import settings

if __name__ == "__main__":
    uvicorn.run(
        "course_recommender.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level="info",
    )

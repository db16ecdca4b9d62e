import uvicorn
from config import ApplicationConfig
from src.api.app import create_app

app = create_app(ApplicationConfig)

if __name__ == "__main__":
    # Dispatch loops live in this process, so a single worker without reload
    uvicorn.run(
        "api:app",
        host=ApplicationConfig.API_HOST,
        port=ApplicationConfig.API_PORT,
        workers=1,
        log_level=str(ApplicationConfig.LOG_LEVEL).lower(),
    )

import uvicorn

from travel_itinerary.server import create_app


app = create_app()


# -------------------------------------------------------------
# RUN LOCAL
# -------------------------------------------------------------
if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=5000,
        reload=True
    )

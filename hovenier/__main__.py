# python -m hovenier  -> lokale API op :8000
import uvicorn


def main() -> None:
    uvicorn.run("hovenier.main:app", host="0.0.0.0", port=8000, reload=False)


if __name__ == "__main__":
    main()

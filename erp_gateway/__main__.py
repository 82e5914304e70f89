import uvicorn

from erp_gateway.config import server_bind
from erp_gateway.main import setup_logging


def main():
    setup_logging()
    host, port = server_bind()
    uvicorn.run("erp_gateway.main:app", host=host, port=port)


if __name__ == "__main__":
    main()

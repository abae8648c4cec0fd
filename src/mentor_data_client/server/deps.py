from fastapi import Request

from mentor_data_client.client import DataClient


def get_data_client(request: Request) -> DataClient:
    """Клиент создаётся один раз в lifespan и живёт в app.state."""
    return request.app.state.data_client

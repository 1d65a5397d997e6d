from pydantic import BaseModel, ConfigDict


class SessionContext(BaseModel):
    """Network/restaurant the operator is currently working in.

    Built per request from headers and passed explicitly to services,
    so nothing below the route layer reads process-wide state.
    """
    model_config = ConfigDict(frozen=True)

    network_id: str | None = None
    restaurant_id: str | None = None

from fastapi import Request

from retrophoto.di.container import Container


def get_container(request: Request) -> Container:
    """Return the container attached to the app during startup."""
    return request.app.state.container

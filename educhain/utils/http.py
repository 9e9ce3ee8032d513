from fastapi import Request


def is_json_request(request: Request) -> bool:
    ctype = request.headers.get("content-type", "")
    if ctype.startswith("application/json"):
        return True
    accept = request.headers.get("accept", "")
    return "application/json" in accept and "text/html" not in accept


async def read_payload(request: Request) -> tuple[dict, bool]:
    """Reads a JSON or form body into a plain dict; the flag tells which one it was."""
    if request.headers.get("content-type", "").startswith("application/json"):
        try:
            data = await request.json()
        except ValueError:
            data = None
        return (data if isinstance(data, dict) else {}), True
    form = await request.form()
    return {k: v for k, v in form.items() if isinstance(v, str)}, is_json_request(request)

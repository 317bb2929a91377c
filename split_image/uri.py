"""Merge SAS token query parameters into blob URLs."""

from __future__ import annotations

import httpx


def combine_sas_token_with_uri(image_uri: str, sas_token: str | None) -> str:
    """Return ``image_uri`` with the token's query parameters merged in.

    Token parameters replace every existing value of the same key (the last
    token value wins when the token repeats a key); all other parameters,
    along with scheme, host, path and fragment, are left untouched.
    """

    url = httpx.URL(image_uri)
    token = (sas_token or "").strip().lstrip("?")
    if not token:
        return str(url)

    token_params = httpx.QueryParams(token)
    overrides = {key: token_params.get_list(key)[-1] for key in token_params.keys()}
    return str(url.copy_merge_params(overrides))

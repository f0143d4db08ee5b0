# Copyright 2025 Gowtham Rao <rao@ohdsi.org>
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

from types import SimpleNamespace

import pytest
from pytest_mock import MockerFixture

from py_sync_ctgov.narrative.backend import SYSTEM_PROMPT, OpenAIBackend

pytestmark = pytest.mark.unit


def completion(content):
    message = SimpleNamespace(content=content)
    return SimpleNamespace(choices=[SimpleNamespace(message=message)])


@pytest.fixture
def mock_client(mocker: MockerFixture):
    client = mocker.MagicMock()
    client.chat.completions.create = mocker.AsyncMock(return_value=completion("  Hello.  "))
    return client


@pytest.mark.asyncio
async def test_complete_sends_system_and_user_messages(mock_client):
    backend = OpenAIBackend(client=mock_client)

    text = await backend.complete("Rewrite this.")

    assert text == "Hello."
    kwargs = mock_client.chat.completions.create.call_args.kwargs
    assert kwargs["model"] == "gpt-4o"
    assert kwargs["temperature"] == 0.3
    assert kwargs["messages"] == [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": "Rewrite this."},
    ]


@pytest.mark.asyncio
async def test_complete_without_system_prompt(mock_client):
    backend = OpenAIBackend(model="gpt-4o-mini", client=mock_client)

    await backend.complete("Title please.", system_prompt=None, temperature=0.1)

    kwargs = mock_client.chat.completions.create.call_args.kwargs
    assert kwargs["model"] == "gpt-4o-mini"
    assert kwargs["temperature"] == 0.1
    assert kwargs["messages"] == [{"role": "user", "content": "Title please."}]


@pytest.mark.asyncio
async def test_empty_response_becomes_empty_string(mock_client):
    mock_client.chat.completions.create.return_value = completion(None)
    assert await OpenAIBackend(client=mock_client).complete("x") == ""


@pytest.mark.asyncio
async def test_transport_errors_propagate(mock_client):
    mock_client.chat.completions.create.side_effect = ConnectionError("down")
    with pytest.raises(ConnectionError):
        await OpenAIBackend(client=mock_client).complete("x")


@pytest.mark.asyncio
async def test_aclose_closes_client(mock_client, mocker: MockerFixture):
    mock_client.close = mocker.AsyncMock()

    await OpenAIBackend(client=mock_client).aclose()

    mock_client.close.assert_awaited_once()

#!/usr/bin/env python3
"""
SSE watcher for one carpool group

Usage:
    python -m script.watch_group_sse <group_id> <token> [base_url]
"""

import asyncio
import sys

import httpx
import orjson


async def watch(group_id: str, token: str, base_url: str) -> None:
    url = f'{base_url}/api/schedule-slots/groups/{group_id}/sse'
    headers = {'Authorization': f'Bearer {token}'}

    print(f'🔗 Connecting to SSE stream: {url}')
    print('=' * 80)

    async with httpx.AsyncClient(timeout=None) as client:
        async with client.stream('GET', url, headers=headers) as response:
            print(f'✅ Connected! Status: {response.status_code}')
            print('📊 Receiving schedule updates (Ctrl+C to stop)...')

            event_type = 'message'
            async for line in response.aiter_lines():
                if line.startswith('event: '):
                    event_type = line[7:]
                elif line.startswith('data: '):
                    try:
                        payload = orjson.loads(line[6:])
                    except orjson.JSONDecodeError:
                        print(f'⚠️  {event_type}: invalid JSON')
                        continue
                    print(f'📦 {event_type}: {payload.get("data", payload)}')


if __name__ == '__main__':
    if len(sys.argv) < 3:
        print(__doc__)
        raise SystemExit(2)
    try:
        base_url = sys.argv[3] if len(sys.argv) > 3 else 'http://localhost:8000'
        asyncio.run(watch(sys.argv[1], sys.argv[2], base_url))
    except KeyboardInterrupt:
        print('\n👋 Stopped')

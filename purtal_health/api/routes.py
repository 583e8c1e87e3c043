"""健康检查HTTP接口"""

from aiohttp import web

from ..models.health_check import TargetKind, utc_now, format_timestamp
from ..monitor import HealthMonitor
from ..utils.exceptions import TargetNotFoundError
from ..utils.log_manager import get_logger, log_manager

MONITOR_KEY = web.AppKey('monitor', HealthMonitor)

logger = get_logger('api')
routes = web.RouteTableDef()


def _error_response(message: str, status: int) -> web.Response:
    return web.json_response({'error': message}, status=status)


async def _single_status(request: web.Request, kind: TargetKind) -> web.Response:
    monitor = request.app[MONITOR_KEY]
    target_id = request.match_info['id']
    try:
        record = await monitor.get_status(kind, target_id)
    except TargetNotFoundError as e:
        return _error_response(e.message, 404)
    except Exception as e:
        logger.error(f"检查 {kind.value} {target_id} 失败: {e}", exc_info=True)
        return _error_response(str(e), 500)
    return web.json_response(record.to_dict())


async def _all_statuses(request: web.Request, kind: TargetKind) -> web.Response:
    monitor = request.app[MONITOR_KEY]
    try:
        records = await monitor.get_all_statuses(kind)
    except Exception as e:
        logger.error(f"批量检查 {kind.value} 失败: {e}", exc_info=True)
        return _error_response(str(e), 500)
    return web.json_response([record.to_dict(include_id=True) for record in records])


@routes.get('/api/ping')
async def ping(request: web.Request) -> web.Response:
    return web.json_response({'status': 'ok', 'timestamp': format_timestamp(utc_now())})


@routes.get('/api/health')
async def all_service_statuses(request: web.Request) -> web.Response:
    return await _all_statuses(request, TargetKind.SERVICE)


@routes.get('/api/health/cache/all')
async def cached_statuses(request: web.Request) -> web.Response:
    snapshot = request.app[MONITOR_KEY].get_cached_snapshot()
    return web.json_response({target_id: record.to_dict()
                              for target_id, record in snapshot.items()})


@routes.get('/api/health/clients')
async def all_client_statuses(request: web.Request) -> web.Response:
    return await _all_statuses(request, TargetKind.CLIENT)


@routes.get('/api/health/client/{id}')
async def client_status(request: web.Request) -> web.Response:
    return await _single_status(request, TargetKind.CLIENT)


@routes.get('/api/health/{id}')
async def service_status(request: web.Request) -> web.Response:
    return await _single_status(request, TargetKind.SERVICE)


@routes.get('/api/errors')
async def recent_errors(request: web.Request) -> web.Response:
    try:
        limit = int(request.query.get('limit', 10))
    except ValueError:
        limit = 10
    errors = log_manager.get_recent_errors(limit)
    return web.json_response({
        'errors': errors,
        'count': log_manager.get_error_count(),
        'total': len(errors)
    })


@routes.delete('/api/errors')
async def clear_errors(request: web.Request) -> web.Response:
    log_manager.clear_recent_errors()
    return web.json_response({'message': 'Error log cleared'})


def create_app(monitor: HealthMonitor) -> web.Application:
    """
    创建接口应用

    Args:
        monitor: 进程唯一的健康监控器

    Returns:
        web.Application: aiohttp 应用
    """
    app = web.Application()
    app[MONITOR_KEY] = monitor
    app.add_routes(routes)
    return app

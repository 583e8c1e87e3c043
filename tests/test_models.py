"""数据模型测试"""

from datetime import datetime, timezone, timedelta

from purtal_health.models.health_check import (HealthStatus, StatusRecord, TargetKind,
                                               format_timestamp, parse_timestamp)
from purtal_health.models.settings import HealthCheckSettings


class TestTimestamps:
    """时间戳解析和格式化测试"""

    def test_parse_z_suffix(self):
        """测试解析以Z结尾的ISO时间"""
        parsed = parse_timestamp('2024-05-01T10:20:30.123Z')
        assert parsed == datetime(2024, 5, 1, 10, 20, 30, 123000, tzinfo=timezone.utc)

    def test_parse_naive_as_utc(self):
        """测试不带时区的时间按UTC处理"""
        parsed = parse_timestamp('2024-05-01T10:20:30')
        assert parsed.tzinfo is not None
        assert parsed.utcoffset() == timedelta(0)

    def test_parse_invalid(self):
        """测试无效时间返回None"""
        assert parse_timestamp(None) is None
        assert parse_timestamp('') is None
        assert parse_timestamp('not-a-date') is None
        assert parse_timestamp(12345) is None

    def test_format(self):
        """测试格式化为毫秒精度"""
        value = datetime(2024, 5, 1, 10, 20, 30, 123456, tzinfo=timezone.utc)
        assert format_timestamp(value) == '2024-05-01T10:20:30.123Z'
        assert format_timestamp(None) is None

    def test_format_parse_keeps_order(self):
        """测试格式化后解析不改变先后顺序"""
        earlier = datetime(2024, 5, 1, 10, 0, 0, tzinfo=timezone.utc)
        later = earlier + timedelta(milliseconds=5)
        assert parse_timestamp(format_timestamp(earlier)) < parse_timestamp(format_timestamp(later))


class TestStatusRecord:
    """状态记录测试"""

    def test_is_alive(self):
        """测试在线判断"""
        assert StatusRecord(status=HealthStatus.HEALTHY).is_alive
        assert StatusRecord(status=HealthStatus.ONLINE).is_alive
        assert not StatusRecord(status=HealthStatus.UNHEALTHY).is_alive
        assert not StatusRecord(status=HealthStatus.OFFLINE).is_alive
        assert not StatusRecord(status=HealthStatus.UNKNOWN).is_alive

    def test_to_dict_unknown(self):
        """测试未启用检查的记录"""
        data = StatusRecord(status=HealthStatus.UNKNOWN).to_dict()
        assert data == {'status': 'unknown', 'lastChecked': None, 'lastSeen': None, 'error': None}

    def test_to_dict_with_diagnostics(self):
        """测试带诊断信息的记录"""
        now = datetime(2024, 5, 1, 10, 0, 0, tzinfo=timezone.utc)
        record = StatusRecord(
            status=HealthStatus.HEALTHY,
            target_id='svc-1',
            target_kind=TargetKind.SERVICE,
            last_checked=now,
            last_seen=now,
            status_code=200,
            response_time=0.12345
        )

        data = record.to_dict(include_id=True)
        assert data['serviceId'] == 'svc-1'
        assert data['status'] == 'healthy'
        assert data['statusCode'] == 200
        assert data['lastSeen'] == '2024-05-01T10:00:00.000Z'
        assert data['responseTime'] == 0.123
        assert 'pingTime' not in data

    def test_to_dict_client_id(self):
        """测试客户端记录使用 clientId"""
        record = StatusRecord(status=HealthStatus.ONLINE, target_id='c-1',
                              target_kind=TargetKind.CLIENT, ping_time=12.0)
        data = record.to_dict(include_id=True)
        assert data['clientId'] == 'c-1'
        assert data['pingTime'] == 12.0
        assert 'clientId' not in record.to_dict()


class TestHealthCheckSettings:
    """健康检查设置测试"""

    def test_defaults(self):
        """测试设置缺失时使用默认值"""
        for raw in (None, {}, {'healthCheck': None}, {'title': 'Purtal'}):
            settings = HealthCheckSettings.from_settings(raw)
            assert settings.service_frequency == 30
            assert settings.service_timeout_ms == 5000
            assert settings.client_frequency == 60
            assert settings.client_timeout == 3

    def test_from_settings(self):
        """测试读取 healthCheck 设置"""
        settings = HealthCheckSettings.from_settings({'healthCheck': {
            'serviceFrequency': 10,
            'serviceTimeout': 1500,
            'clientFrequency': 20,
            'clientTimeout': 1
        }})
        assert settings.frequency_for(TargetKind.SERVICE) == 10
        assert settings.timeout_for(TargetKind.SERVICE) == 1500
        assert settings.frequency_for(TargetKind.CLIENT) == 20
        assert settings.timeout_for(TargetKind.CLIENT) == 1

    def test_invalid_values_fall_back(self):
        """测试非正数或非数值设置回退到默认值"""
        settings = HealthCheckSettings.from_settings({'healthCheck': {
            'serviceFrequency': 0,
            'serviceTimeout': -1,
            'clientFrequency': 'often',
            'clientTimeout': True
        }})
        assert settings == HealthCheckSettings()

    def test_partial_settings(self):
        """测试部分设置"""
        settings = HealthCheckSettings.from_settings({'healthCheck': {'clientFrequency': 15}})
        assert settings.client_frequency == 15
        assert settings.service_frequency == 30

    def test_same_cadence(self):
        """测试检查频率比较只关心频率"""
        base = HealthCheckSettings()
        assert base.same_cadence(HealthCheckSettings(service_timeout_ms=100, client_timeout=1))
        assert not base.same_cadence(HealthCheckSettings(service_frequency=10))
        assert not base.same_cadence(None)

    def test_to_dict_round_trip(self):
        """测试 to_dict 使用设置存储中的字段名"""
        settings = HealthCheckSettings(service_frequency=5)
        assert HealthCheckSettings.from_settings({'healthCheck': settings.to_dict()}) == settings

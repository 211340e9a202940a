"""
测试 factory/services.py：请求参数到证书工厂调用的映射。
"""

from unittest.mock import MagicMock, patch

from src.pki.crypto.core import key_pair_to_pem
from src.pki.factory import services
from src.pki.factory.schemas import IntermediateRequest, UserRequest


def _issue_request(cls, root_keys, serial_number):
    return cls(
        subject_dn="CN=Test User, O=Test Org, C=BR",
        issuer_dn="CN=Test Intermediate CA, O=Test Org, C=BR",
        issuer_private_key=key_pair_to_pem(root_keys),
        serial_number=serial_number,
    )


def test_explicit_zero_serial_is_kept(root_keys, pki_ders):
    """显式给出的序列号 0 不会被当作缺省值"""
    mock_factory = MagicMock()
    mock_factory.create_user.return_value = pki_ders[2]
    mock_factory.create_intermediate.return_value = pki_ders[1]
    with patch.object(services, "factory", mock_factory), patch.object(
        services.crypto, "random_serial", side_effect=AssertionError("不应生成随机序列号")
    ):
        services.create_user_service(_issue_request(UserRequest, root_keys, 0))
        services.create_intermediate_service(_issue_request(IntermediateRequest, root_keys, 0))

    assert mock_factory.create_user.call_args.kwargs["serial_number"] == 0
    assert mock_factory.create_intermediate.call_args.kwargs["serial_number"] == 0


def test_missing_serial_is_random(root_keys, pki_ders):
    mock_factory = MagicMock()
    mock_factory.create_user.return_value = pki_ders[2]
    with patch.object(services, "factory", mock_factory), patch.object(
        services.crypto, "random_serial", return_value=12345
    ):
        response = services.create_user_service(_issue_request(UserRequest, root_keys, None))

    assert mock_factory.create_user.call_args.kwargs["serial_number"] == 12345
    # 响应中的序列号取自签发出的证书
    assert response.serial_number == 3

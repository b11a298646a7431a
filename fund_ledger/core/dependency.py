"""
依赖注入装饰器（Dependency Injection）。

职责：
- 通过 @register 把工厂函数登记到全局注册表；
- 通过 @dependency 在调用时自动填充值为 None 的同名参数；
- 调用方显式传入的非 None 参数不会被覆盖（测试时可直接传入内存账本/假客户端）。

使用示例：
    # 1. 注册依赖工厂（在 fund_ledger/core/container.py 中）
    @register("fund_book")
    def get_fund_book() -> FundBook:
        ...

    # 2. 在 Flow 函数上使用装饰器
    @dependency
    def sync_buy_trade(
        payload: dict,
        *,
        fund_book: FundBook | None = None,     # 自动注入
        state_repo: LedgerStateRepo | None = None,  # 自动注入
    ) -> bool:
        ...

    # 3. 测试时覆盖依赖
    sync_buy_trade(payload, fund_book=FundBook(), state_repo=InMemoryRepo())

注意事项：
- 注册名必须与函数参数名完全一致（大小写敏感）；
- 依赖注册在 fund_ledger/flows/__init__.py 自动触发（导入任何 flow 模块时生效）。
"""

from __future__ import annotations

import inspect
from functools import wraps
from typing import Any, Callable, TypeVar

# 依赖注册表：参数名 -> 工厂函数
_REGISTRY: dict[str, Callable[[], Any]] = {}

T = TypeVar("T")


def register(name: str) -> Callable[[Callable[[], T]], Callable[[], T]]:
    """
    装饰器：将工厂函数注册到依赖注入容器。

    Args:
        name: 注册名称，必须与目标函数的参数名完全一致。
    """

    def decorator(factory_func: Callable[[], T]) -> Callable[[], T]:
        _REGISTRY[name] = factory_func
        return factory_func

    return decorator


def dependency(func: Callable[..., T]) -> Callable[..., T]:
    """
    依赖注入装饰器：对注册表中存在、且调用时为 None 的参数，调用工厂函数注入实例。

    工厂只在确实需要时才被调用，因此显式传入全部依赖的调用不会触发数据库/网络初始化。
    """
    sig = inspect.signature(func)

    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> T:
        bound_args = sig.bind_partial(*args, **kwargs)
        bound_args.apply_defaults()

        for param_name in sig.parameters:
            if param_name in _REGISTRY and bound_args.arguments.get(param_name) is None:
                bound_args.arguments[param_name] = _REGISTRY[param_name]()

        return func(*bound_args.args, **bound_args.kwargs)

    return wrapper

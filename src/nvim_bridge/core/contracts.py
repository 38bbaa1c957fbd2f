"""
核心数据结构（Instance / Snapshot / OperationResult）。

约束：
- 所有对象按调用构造、用完即弃，不做跨调用缓存；
- snapshot 要么完整、要么只有 error（不会出现“部分字段 + error”）；
- OperationResult 的 `error` 当且仅当 `success=false` 时存在。
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from nvim_bridge.core.errors import ErrorKind


class NvimInstance(BaseModel):
    """
    一个可控的 Neovim 进程。

    字段：
    - socket_path：RPC socket 路径（派生值；每次操作都重新解析，不长期持有）
    - pid：进程号（实例身份）
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    socket_path: str
    pid: int


class CursorPosition(BaseModel):
    """光标位置（1-based，对齐 `getpos('.')`）。"""

    model_config = ConfigDict(extra="forbid")

    line: int
    column: int


class BufferInfo(BaseModel):
    """buffer 列表中的一项。"""

    model_config = ConfigDict(extra="forbid")

    id: int
    name: str
    loaded: bool
    current: bool


class InstanceSnapshot(BaseModel):
    """
    实例状态快照（只读聚合）。

    字段：
    - instance：目标实例（not found 时 socket_path 为空字符串）
    - working_directory / current_file / buffers / cursor_position：快照内容
    - error / error_kind：失败占位；存在时其它可选字段必须全部缺省
    """

    model_config = ConfigDict(extra="forbid")

    instance: NvimInstance
    working_directory: Optional[str] = None
    current_file: Optional[str] = None
    buffers: Optional[List[BufferInfo]] = None
    cursor_position: Optional[CursorPosition] = None
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None

    @model_validator(mode="after")
    def _error_is_exclusive(self) -> "InstanceSnapshot":
        """校验：error 与快照内容字段互斥。"""

        if self.error is None:
            if self.error_kind is not None:
                raise ValueError("error_kind requires error")
            return self
        populated = [
            name
            for name in ("working_directory", "current_file", "buffers", "cursor_position")
            if getattr(self, name) is not None
        ]
        if populated:
            raise ValueError(f"error snapshot must not carry {', '.join(populated)}")
        return self

    @classmethod
    def failed(cls, instance: NvimInstance, *, error_kind: ErrorKind, error: str) -> "InstanceSnapshot":
        """便捷构造：错误占位快照。"""

        return cls(instance=instance, error=error, error_kind=error_kind)


class OperationResult(BaseModel):
    """
    Navigate/Execute 共享的结果形状。

    字段：
    - success：是否成功
    - message：一句话可读说明（成功/失败都必须存在）
    - error：失败原因（仅 success=false 时存在）
    - error_kind：失败分类（仅 success=false 时存在）
    """

    model_config = ConfigDict(extra="forbid")

    success: bool
    message: str = Field(min_length=1)
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None

    @model_validator(mode="after")
    def _error_iff_failed(self) -> "OperationResult":
        """校验：error 当且仅当失败时存在。"""

        if self.success and (self.error is not None or self.error_kind is not None):
            raise ValueError("successful result must not carry error")
        if not self.success and not self.error:
            raise ValueError("failed result requires error")
        return self


class OpenFileResult(OperationResult):
    """Navigator 结果（回显实际发送的 file/位置）。"""

    file: str
    line: Optional[int] = None
    column: Optional[int] = None
    end_line: Optional[int] = None
    end_column: Optional[int] = None


class ExecuteResult(OperationResult):
    """Executor 结果（回显 command 与远端输出）。"""

    command: str
    is_key_sequence: bool = False
    output: Optional[str] = None

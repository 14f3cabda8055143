"""领域层模型与协议。

包含：
- models: Message / Delta / ChatRequest / ChatResponse 等统一数据模型。
- conversation: 有序、带约束的会话消息历史。
- exceptions: 业务异常类型定义。
"""

"""deploydesk -- 部署任务台

部署任务的状态机、部署顺序分配、批次划分与批量操作。
"""

__version__ = "0.1.0"

"""CLI 入口模块 -- python -m deploydesk.core <command>

支持的命令：
  show                       按批次展示已保存的部署任务
  add <app> [version] [cluster]  生成一个待部署任务
  reset                      清空已保存的任务与分组展开状态
"""

import asyncio
import sys

from ..logging_config import setup_logging
from .config import get_db_path
from .models.enums import STATUS_LABELS
from .models.task import DeploymentTask

USAGE = """用法: python -m deploydesk.core <command>
命令:
  show                           按批次展示已保存的部署任务
  add <app> [version] [cluster]  生成一个待部署任务
  reset                          清空已保存的任务与分组展开状态"""


def main(argv: list[str] | None = None) -> None:
    """CLI 主入口"""
    setup_logging()
    args = sys.argv[1:] if argv is None else argv
    if not args:
        print(USAGE)
        sys.exit(1)

    command = args[0]

    if command == "show":
        asyncio.run(show_tasks())
    elif command == "add":
        if len(args) < 2:
            print("用法: python -m deploydesk.core add <app> [version] [cluster]")
            sys.exit(1)
        asyncio.run(add_task(*args[1:4]))
    elif command == "reset":
        asyncio.run(reset_state())
    else:
        print(f"未知命令: {command}")
        print("可用命令: show, add, reset")
        sys.exit(1)


def _format_task(task: DeploymentTask) -> str:
    order = str(task.deploy_order) if task.deploy_order is not None else "-"
    line = f"  [{order:>2}] {task.app_name} {task.version} ({STATUS_LABELS[task.status]})"
    if task.error_message:
        line += f"  错误: {task.error_message.splitlines()[0]}"
    return line


async def show_tasks() -> None:
    """打印批次划分"""
    from .store import create_store_group
    from .views import batch_partition

    db_path = get_db_path()
    print(f"数据库路径: {db_path}")

    store_group = await create_store_group(db_path)
    try:
        tasks = store_group.task_store.tasks
        if not tasks:
            print("暂无部署任务")
            return

        partition = batch_partition(tasks)
        for batch in partition.batches:
            created = batch.created_at.strftime("%Y-%m-%d %H:%M:%S")
            print(
                f"批次 {batch.batch_number}  {batch.batch_key}  "
                f"{batch.task_count} 个任务  创建于 {created}"
            )
            for task in batch.tasks:
                print(_format_task(task))
        if partition.unbatched_tasks:
            print(f"未分组  {len(partition.unbatched_tasks)} 个任务")
            for task in partition.unbatched_tasks:
                print(_format_task(task))
    finally:
        await store_group.close()


async def add_task(app_name: str, version: str = "", cluster: str = "") -> None:
    """追加一个待部署任务"""
    from .store import create_store_group

    store_group = await create_store_group(get_db_path())
    try:
        task = DeploymentTask.create(app_name, version=version, cluster=cluster)
        store_group.task_store.add_tasks([task])
        print(f"成功生成 1 个部署任务: {task.key}")
    finally:
        await store_group.close()


async def reset_state() -> None:
    """清空持久化状态"""
    from .store import create_store_group

    store_group = await create_store_group(get_db_path())
    try:
        store_group.task_store.reset()
        print("已清空部署任务与分组展开状态")
    finally:
        await store_group.close()


if __name__ == "__main__":
    main()

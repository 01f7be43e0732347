"""
CSV读写辅助函数
"""
import csv
from typing import Any, Callable, Iterable, List, Optional, Sequence

# 逗号分隔、双引号转义、\n 换行
CSV_DIALECT = {
    "delimiter": ",",
    "quotechar": '"',
    "lineterminator": "\n",
}


def open_csv_writer(path, mode: str = "w"):
    """
    打开CSV文件用于写入

    Returns:
        (文件对象, csv.writer)，调用方负责关闭文件
    """
    handle = open(path, mode, newline="", encoding="utf-8")
    return handle, csv.writer(handle, **CSV_DIALECT)


def csv_read(
    path,
    transform: Callable[[List[str]], Any],
    header: bool = False
) -> List[Any]:
    """
    从CSV文件读取数据

    Args:
        path: 文件路径
        transform: 对每一行调用的转换函数，返回假值的行会被丢弃
        header: 为True时按位置跳过第一行（不校验内容）

    Returns:
        转换结果列表，顺序与文件一致
    """
    res = []

    with open(path, newline="", encoding="utf-8") as handle:
        for line, row in enumerate(csv.reader(handle, **CSV_DIALECT), start=1):
            if header and line == 1:
                continue

            item = transform(row)
            if item:
                res.append(item)

    return res


def csv_write(
    path,
    data: Iterable[Any],
    transform: Callable[[Any], Optional[Sequence[Any]]],
    header: Optional[Sequence[Any]] = None
) -> None:
    """
    把数据写入CSV文件（覆盖已有内容）

    Args:
        path: 文件路径
        data: 要写入的数据
        transform: 把每个元素转换为一行，返回假值时跳过该元素
        header: 可选的表头行，原样写在第一行
    """
    handle, writer = open_csv_writer(path)
    with handle:
        if header is not None:
            writer.writerow(header)

        for entry in data:
            row = transform(entry)
            if row:
                writer.writerow(row)

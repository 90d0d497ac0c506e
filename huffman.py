"""
Реализует построение дерева Хаффмана по таблице частот символов
фиксированной ширины и получение словаря кодов.
Левая ветвь кодируется битом 0, правая - битом 1.
"""

from typing import Dict, Iterator, List, Optional, Tuple

from format import ENTRY_SIZE, HEADER_SIZE, DictEntry
from frequency import check_width


class HuffmanNode:
    def __init__(self, symbol: Optional[int] = None, freq: int = 0,
                 left: Optional['HuffmanNode'] = None,
                 right: Optional['HuffmanNode'] = None):
        self.symbol = symbol
        self.freq = freq
        self.left = left
        self.right = right

    @property
    def is_leaf(self) -> bool:
        return self.left is None and self.right is None

    def __repr__(self):
        if self.is_leaf:
            return f"Leaf({self.symbol}, freq={self.freq})"
        return f"Node(freq={self.freq})"


class HuffmanTree:
    def __init__(self, width: int, root: Optional[HuffmanNode] = None):
        check_width(width)
        self.width = width
        self.root = root

    @classmethod
    def build(cls, width: int, frequencies: Dict[int, int]) -> 'HuffmanTree':
        nodes = [HuffmanNode(symbol=symbol, freq=freq)
                 for symbol, freq in sorted(frequencies.items())]

        # объединяем два самых редких узла, пока не останется один корень
        while len(nodes) > 1:
            nodes.sort(key=lambda node: node.freq, reverse=True)

            right = nodes.pop()
            left = nodes.pop()

            nodes.append(HuffmanNode(freq=left.freq + right.freq,
                                     left=left, right=right))

        return cls(width, nodes[0] if nodes else None)

    def leaves(self) -> Iterator[Tuple[HuffmanNode, int, int]]:
        """
        Обход в глубину (pre-order) без рекурсии.
        Возвращает (лист, длина кода, код). Единственный лист получает код '0'.
        """
        if self.root is None:
            return

        if self.root.is_leaf:
            yield self.root, 1, 0
            return

        stack = [(self.root, 0, 0)]

        while stack:
            node, length, code = stack.pop()

            if node.is_leaf:
                yield node, length, code
                continue

            stack.append((node.right, length + 1, (code << 1) | 1))
            stack.append((node.left, length + 1, code << 1))

    def total_bits(self) -> int:
        return sum(node.freq * length for node, length, _ in self.leaves())

    def leaf_count(self) -> int:
        return sum(1 for _ in self.leaves())

    def estimate_size(self) -> int:
        """Точный размер контейнера в байтах с заголовком и словарём."""
        payload_bits = self.total_bits()
        return (HEADER_SIZE
                + ENTRY_SIZE * self.leaf_count()
                + payload_bits // 8 + (1 if payload_bits % 8 else 0))

    def dictionary(self) -> List[DictEntry]:
        return [DictEntry(bit_length=length, code=code, symbol=node.symbol)
                for node, length, code in self.leaves()]

    def encode_table(self) -> Dict[int, Tuple[int, int]]:
        return {node.symbol: (length, code) for node, length, code in self.leaves()}

"""
PLONK 회로 표현 (Circuit Representation)
==========================================

계산을 게이트와 배선으로 표현하는 PLONK 산술화(arithmetization).

**PLONK 게이트 구조**:
  각 게이트는 3개의 배선 a, b, c와 5개의 셀렉터로 구성된다:

    q_L·a + q_R·b + q_O·c + q_M·(a·b) + q_C = 0

  | 유형     | q_L | q_R | q_O | q_M | q_C | 의미          |
  |----------|-----|-----|-----|-----|-----|---------------|
  | 곱셈     |  0  |  0  | -1  |  1  |  0  | a·b = c       |
  | 덧셈     |  1  |  1  | -1  |  0  |  0  | a + b = c     |
  | 상수덧셈 |  1  |  0  | -1  |  0  |  k  | a + k = c     |
  | 공개입력 |  0  |  0  |  1  |  0  |  0  | c = w (PI)    |

**변수(variable) 기반 배선**:
  각 배선은 회로 변수의 인덱스를 가리킨다. 같은 변수를 가리키는 배선
  위치들은 자동으로 하나의 순환(cycle)으로 묶여 복사 제약이 된다.
  변수 0은 예약된 "빈 배선"으로, 사용하지 않는 입력과 패딩 게이트에
  놓이며 복사 제약에 포함되지 않는다.

**공개 입력**:
  공개 입력 게이트는 회로의 맨 앞(인덱스 0, 1, ...)에 와야 한다.
  PI(ωⁱ) = -wᵢ 규약은 utils.public_input_polynomial 참고.

사용 예시:
    >>> circuit = Circuit()
    >>> x = circuit.new_variable("x")
    >>> x2 = circuit.new_variable()
    >>> circuit.add_multiplication_gate(x, x, x2)
"""

from zkgrid.plonk.field import FR


# 배선 인덱스
WIRE_A = 0
WIRE_B = 1
WIRE_C = 2

# 예약된 빈 변수
ZERO_VARIABLE = 0


class Gate:
    """PLONK 산술 게이트.

    게이트 방정식: q_L·a + q_R·b + q_O·c + q_M·(a·b) + q_C = 0

    속성:
        q_l, q_r, q_o, q_m, q_c: 셀렉터 (FR)
        a, b, c: 각 배선에 놓인 변수 인덱스
    """

    __slots__ = ("q_l", "q_r", "q_o", "q_m", "q_c", "a", "b", "c")

    def __init__(self, q_l, q_r, q_o, q_m, q_c, a=ZERO_VARIABLE, b=ZERO_VARIABLE, c=ZERO_VARIABLE):
        self.q_l = q_l if isinstance(q_l, FR) else FR(q_l)
        self.q_r = q_r if isinstance(q_r, FR) else FR(q_r)
        self.q_o = q_o if isinstance(q_o, FR) else FR(q_o)
        self.q_m = q_m if isinstance(q_m, FR) else FR(q_m)
        self.q_c = q_c if isinstance(q_c, FR) else FR(q_c)
        self.a = a
        self.b = b
        self.c = c

    @property
    def wires(self):
        return self.a, self.b, self.c

    def check(self, a, b, c):
        """게이트 제약 q_L·a + q_R·b + q_O·c + q_M·(a·b) + q_C == 0 인지 확인한다."""
        if not isinstance(a, FR):
            a = FR(a)
        if not isinstance(b, FR):
            b = FR(b)
        if not isinstance(c, FR):
            c = FR(c)
        result = (
            self.q_l * a
            + self.q_r * b
            + self.q_o * c
            + self.q_m * (a * b)
            + self.q_c
        )
        return result == 0

    def __repr__(self):
        return (
            f"Gate(q_l={int(self.q_l)}, q_r={int(self.q_r)}, q_o={int(self.q_o)}, "
            f"q_m={int(self.q_m)}, q_c={int(self.q_c)}, wires={self.wires})"
        )


class Circuit:
    """PLONK 산술 회로.

    속성:
        gates: Gate 리스트
        num_variables: 변수 개수 (변수 0 포함)
        variable_names: 이름 → 변수 인덱스
        private_variables: 비공개 입력 변수 인덱스 (선언 순서)
        public_variables: 공개 입력 변수 인덱스 (공개 입력 순서)
        copy_constraints: 명시적 (gate1, wire1, gate2, wire2) 제약
            - j=0: a, j=1: b, j=2: c
    """

    def __init__(self):
        self.gates = []
        self.num_variables = 1
        self.variable_names = {}
        self.private_variables = []
        self.public_variables = []
        self.copy_constraints = []

    @property
    def n(self):
        """게이트 수 (패딩 전)."""
        return len(self.gates)

    @property
    def num_public_inputs(self):
        return len(self.public_variables)

    # ── 변수 ──

    def new_variable(self, name=None):
        """새 회로 변수를 할당하고 인덱스를 반환한다."""
        index = self.num_variables
        self.num_variables += 1
        if name is not None:
            if name in self.variable_names:
                raise ValueError(f"이미 존재하는 변수 이름입니다: {name}")
            self.variable_names[name] = index
        return index

    def variable(self, name):
        """이름으로 변수 인덱스를 조회한다."""
        return self.variable_names[name]

    def add_private_input(self, name):
        """이름 있는 비공개 입력 변수를 선언한다."""
        var = self.new_variable(name)
        self.private_variables.append(var)
        return var

    def variable_name(self, var):
        for name, index in self.variable_names.items():
            if index == var:
                return name
        return None

    # ── 게이트 ──

    def add_gate(self, q_l, q_r, q_o, q_m, q_c, a=ZERO_VARIABLE, b=ZERO_VARIABLE, c=ZERO_VARIABLE):
        """임의의 셀렉터를 가진 게이트를 추가하고 인덱스를 반환한다."""
        for var in (a, b, c):
            if not 0 <= var < self.num_variables:
                raise ValueError(f"존재하지 않는 변수입니다: {var}")
        self.gates.append(Gate(q_l, q_r, q_o, q_m, q_c, a, b, c))
        return len(self.gates) - 1

    def add_multiplication_gate(self, a, b, c):
        """곱셈 게이트: a · b = c."""
        return self.add_gate(0, 0, -1, 1, 0, a, b, c)

    def add_addition_gate(self, a, b, c):
        """덧셈 게이트: a + b = c."""
        return self.add_gate(1, 1, -1, 0, 0, a, b, c)

    def add_constant_gate(self, a, constant, c):
        """상수 덧셈 게이트: a + constant = c."""
        return self.add_gate(1, 0, -1, 0, constant, a, ZERO_VARIABLE, c)

    def add_public_input_gate(self, var):
        """공개 입력 게이트: c = w (PI(ωⁱ) = -w).

        공개 입력 게이트는 다른 게이트보다 먼저 추가해야 한다.
        """
        if len(self.gates) != len(self.public_variables):
            raise ValueError("공개 입력 게이트는 회로의 맨 앞에 위치해야 합니다")
        index = self.add_gate(0, 0, 1, 0, 0, ZERO_VARIABLE, ZERO_VARIABLE, var)
        self.public_variables.append(var)
        return index

    def add_copy_constraint(self, gate1, wire1, gate2, wire2):
        """명시적 배선 복사 제약: 게이트1.wire1 == 게이트2.wire2."""
        self.copy_constraints.append((gate1, wire1, gate2, wire2))

    # ── 전처리용 뷰 ──

    def padded_gates(self, n):
        """길이 n으로 패딩된 게이트 리스트 (패딩 게이트는 모든 셀렉터 0)."""
        if n < len(self.gates):
            raise ValueError(f"도메인 크기 {n}가 게이트 수 {len(self.gates)}보다 작습니다")
        padding = [Gate(0, 0, 0, 0, 0) for _ in range(n - len(self.gates))]
        return self.gates + padding

    def get_selector_polynomials(self, n=None):
        """셀렉터 벡터 (q_L, q_R, q_O, q_M, q_C)를 반환한다."""
        gates = self.padded_gates(n if n is not None else self.n)
        q_l = [g.q_l for g in gates]
        q_r = [g.q_r for g in gates]
        q_o = [g.q_o for g in gates]
        q_m = [g.q_m for g in gates]
        q_c = [g.q_c for g in gates]
        return q_l, q_r, q_o, q_m, q_c

    def wire_variables(self, n=None):
        """배선별 변수 인덱스 벡터 (a_vars, b_vars, c_vars)."""
        gates = self.padded_gates(n if n is not None else self.n)
        return (
            [g.a for g in gates],
            [g.b for g in gates],
            [g.c for g in gates],
        )

    def build_copy_constraints(self, n=None):
        """배선 순열(permutation) σ를 구성한다.

        위치 규칙: a의 i번째 = i, b의 i번째 = n+i, c의 i번째 = 2n+i.
        같은 변수를 가리키는 위치들과 명시적 복사 제약으로 연결된 위치들을
        동치류로 묶고, 각 동치류를 하나의 순환으로 만든다.

        Returns:
            list[int]: 길이 3n의 순열. sigma[i] = 같은 순환의 다음 위치
        """
        n = n if n is not None else self.n
        a_vars, b_vars, c_vars = self.wire_variables(n)
        positions = a_vars + b_vars + c_vars

        parent = list(range(3 * n))

        def find(x):
            while parent[x] != x:
                parent[x] = parent[parent[x]]
                x = parent[x]
            return x

        def union(x, y):
            rx, ry = find(x), find(y)
            if rx != ry:
                parent[ry] = rx

        first_position = {}
        for pos, var in enumerate(positions):
            if var == ZERO_VARIABLE:
                continue
            if var in first_position:
                union(first_position[var], pos)
            else:
                first_position[var] = pos

        for g1, w1, g2, w2 in self.copy_constraints:
            union(w1 * n + g1, w2 * n + g2)

        cycles = {}
        for pos in range(3 * n):
            cycles.setdefault(find(pos), []).append(pos)

        sigma = list(range(3 * n))
        for members in cycles.values():
            for i, pos in enumerate(members):
                sigma[pos] = members[(i + 1) % len(members)]

        return sigma

    def wire_values(self, assignment, n=None):
        """변수 할당에서 배선 값 (a_vals, b_vals, c_vals)를 만든다.

        Args:
            assignment: 변수 인덱스 → FR 리스트 (길이 num_variables)
        """
        a_vars, b_vars, c_vars = self.wire_variables(n)
        return (
            [assignment[v] for v in a_vars],
            [assignment[v] for v in b_vars],
            [assignment[v] for v in c_vars],
        )

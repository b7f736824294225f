#!/usr/bin/env python3
"""
명령줄 도구
============

  compile-circuit OUT           커밋먼트 회로를 컴파일해서 JSON으로 저장
  commit X Y NULLIFIER          Hash(x, y, nullifier)를 고정 폭 16진수로 출력
  nullifier SID P1 P2           세션에 묶인 널리파이어 유도
  demo                          InMemoryLedger로 commit / reveal 한 번 실행

ZkGridError는 stderr에 출력하고 종료 코드 1로 끝낸다.
"""

import argparse
import sys

from zkgrid.circuit_artifact import compile_commitment_circuit, save_circuit
from zkgrid.commitment import commitment_to_hex, compute_commitment, derive_nullifier
from zkgrid.config import configure, get_config, load_config
from zkgrid.errors import ZkGridError
from zkgrid.log import setup_logging
from zkgrid.pipeline import SessionContext, reveal, start_session


def _int(text):
    # 0x 접두사면 16진수
    return int(text, 16) if text.lower().startswith("0x") else int(text, 10)


def build_arg_parser():
    p = argparse.ArgumentParser(
        description="zkgrid PLONK 커밋먼트 회로용 commit / reveal 도구"
    )
    p.add_argument(
        "--config",
        "-c",
        default=None,
        help="기본값을 덮어쓸 JSON 설정 파일",
    )
    p.add_argument(
        "--profile",
        default=None,
        help="해시 프로파일 (예: poseidon2-bn254-t4-compact)",
    )
    p.add_argument(
        "--quiet",
        action="store_true",
        help="경고 이상만 기록",
    )
    sub = p.add_subparsers(dest="command", required=True)

    compile_p = sub.add_parser("compile-circuit", help="회로를 컴파일해서 파일로 저장")
    compile_p.add_argument("out", help="JSON 회로 파일 경로")

    commit_p = sub.add_parser("commit", help="Hash(x, y, nullifier)를 16진수로 출력")
    commit_p.add_argument("x", type=_int)
    commit_p.add_argument("y", type=_int)
    commit_p.add_argument("nullifier", type=_int)

    null_p = sub.add_parser("nullifier", help="세션에 묶인 널리파이어 유도")
    null_p.add_argument("session_id", type=_int)
    null_p.add_argument("player1")
    null_p.add_argument("player2")

    demo_p = sub.add_parser("demo", help="InMemoryLedger로 commit / reveal 한 번 실행")
    demo_p.add_argument("--session-id", type=_int, default=1)
    demo_p.add_argument("--x", type=_int, default=3)
    demo_p.add_argument("--y", type=_int, default=5)
    return p


def _run_demo(args):
    context = SessionContext.create()
    try:
        session, secret = start_session(
            context, args.session_id, "player-one", "player-two", 100, 100, args.x, args.y,
        )
        print(f"session {session.session_id}: {session.status.value} commitment={session.commitment}")
        verified = reveal(context, args.session_id, secret)
        print(f"session {verified.session_id}: {verified.status.value} tx={verified.reveal_tx}")
        game = context.ledger.get_game(args.session_id)
        print(f"stakes released to {game.winner}")
    finally:
        context.proving.shutdown()
        context.close()


def main(argv=None):
    argv = argv if argv is not None else sys.argv[1:]
    parser = build_arg_parser()
    args = parser.parse_args(argv)

    # --config는 현재 활성 설정 위에 병합한다
    if args.config:
        configure(**load_config(args.config, base=get_config()))
    if args.profile:
        configure(hash_profile=args.profile)
    setup_logging("WARNING" if args.quiet else get_config()["log_level"])

    try:
        if args.command == "compile-circuit":
            artifact = compile_commitment_circuit()
            save_circuit(artifact, args.out)
            print(f"wrote {args.out}: profile={artifact.hash_profile} gates={artifact.circuit.n}")
        elif args.command == "commit":
            print(commitment_to_hex(compute_commitment(args.x, args.y, args.nullifier)))
        elif args.command == "nullifier":
            print(derive_nullifier(args.session_id, args.player1, args.player2))
        elif args.command == "demo":
            _run_demo(args)
    except ZkGridError as exc:
        print(f"ERROR: {type(exc).__name__}: {exc}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()

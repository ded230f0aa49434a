"""
python -m bdm.mcp で MCP サーバーを stdio で起動する。

  python -m bdm.mcp --headed --browser firefox
  python -m bdm.mcp --report-formats json,html -v

設定は環境変数（BDM_*）→ 引数の順で適用する。ログは bdm serve と同じく stderr。
"""

from __future__ import annotations

from typing import Optional, Sequence

from .config import apply_cli_args, build_cli_parser, load_config_from_env, setup_logging
from .server import create_server


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = build_cli_parser().parse_args(argv)
    setup_logging(args.verbose)

    config = apply_cli_args(load_config_from_env(), args)
    create_server(config=config).run()


if __name__ == "__main__":
    main()

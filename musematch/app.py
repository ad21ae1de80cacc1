import argparse
import asyncio
from pathlib import Path
from typing import List, Optional

from . import __version__
from .config import BACKENDS, Settings
from .deck import DeckState
from .env import load_env
from .errors import MuseMatchError, NoCurrentViewerError
from .logger import get_logger
from .models import DirectThreadKey, Match, MatchThreadKey, find_by_id
from .sample_data import seed_sample_data
from .session import Session
from .storage import Store


def _fmt_time(ts) -> str:
    return ts.strftime("%Y-%m-%d %H:%M")


async def _names(store: Store) -> dict:
    return {p.id: p.display_name for p in await store.list_profiles()}


async def cmd_seed(args: argparse.Namespace, store: Store) -> None:
    profiles, projects = await seed_sample_data(store)
    if profiles:
        print(f"Seeded {profiles} profiles and {projects} projects.")
    else:
        print("Directory already has profiles; nothing seeded.")
    if args.viewer:
        await cmd_use(argparse.Namespace(user=args.viewer), store)


async def cmd_use(args: argparse.Namespace, store: Store) -> None:
    profile = find_by_id(await store.list_profiles(), args.user)
    if profile is None:
        raise SystemExit(f"Unknown user: {args.user}")
    if not profile.onboarded:
        raise SystemExit(f"{profile.display_name} has not finished onboarding.")
    await store.set_current_viewer(profile.id)
    print(f"Signed in as {profile.display_name} ({profile.role.value}).")


async def cmd_discover(args: argparse.Namespace, store: Store) -> None:
    session = await Session.open(store)
    deck = await session.deck()
    entries = deck.queue
    if args.limit is not None:
        entries = entries[:args.limit]
    if not entries:
        print("No candidates left. Check back later.")
        return
    print(f"{deck.remaining} candidates for {session.viewer.display_name}:\n")
    for i, entry in enumerate(entries, 1):
        p = entry.profile
        genres = ", ".join(sorted(p.genres)) or "None listed"
        badge = " [verified]" if p.verified else ""
        print(f"{i:>2}. {entry.score:5.1f}% {p.display_name}{badge} ({p.role.value}) - {p.location}")
        print(f"    ID: {p.id}  Genres: {genres}")


async def cmd_swipe(args: argparse.Namespace, store: Store) -> None:
    decisions = [d.strip() for d in args.decisions.split(",") if d.strip()]
    if not decisions:
        raise SystemExit("No decisions given. Use --decisions \"like,pass,...\"")
    session = await Session.open(store)
    deck = await session.deck()
    for decision in decisions:
        if deck.state is DeckState.EXHAUSTED:
            print("No more candidates.")
            break
        entry = deck.current()
        match = await deck.decide(decision)
        if match is not None:
            print(f"[like] {entry.profile.display_name} -> match {match.id}")
        else:
            print(f"[pass] {entry.profile.display_name}")
    print(f"Done. {deck.remaining} candidates left.")


async def cmd_matches(args: argparse.Namespace, store: Store) -> None:
    session = await Session.open(store)
    summaries = await session.match_threads.inbox(session.viewer.id)
    if not summaries:
        print("No matches yet.")
        return
    names = await _names(store)
    unread_threads = sum(1 for s in summaries if s.unread_count)
    print(f"{len(summaries)} matches ({unread_threads} with unread messages):\n")
    for s in summaries:
        name = names.get(s.other_user_id, s.other_user_id)
        unread = f" [{s.unread_count if s.unread_count <= 9 else '9+'} unread]" if s.unread_count else ""
        print(f"Match: {s.match.id}  {name}{unread}  (matched {_fmt_time(s.match.created_at)})")
        if s.last_message:
            print(f"  Last: {s.last_message.content}")
        else:
            print("  Start the conversation!")


def _thread_key(args: argparse.Namespace, viewer_id: str):
    if args.match:
        return MatchThreadKey(args.match), None
    if args.project and args.other:
        return DirectThreadKey.for_pair(args.project, viewer_id, args.other), args.other
    raise SystemExit("Give either --match ID or --project ID with --with USER")


async def _require_participant(session: Session, match_id: str) -> Match:
    match = await session.ledger.get(match_id)
    if match is None or not match.involves(session.viewer.id):
        raise SystemExit(f"Unknown match: {match_id}")
    return match


async def cmd_send(args: argparse.Namespace, store: Store) -> None:
    session = await Session.open(store)
    viewer_id = session.viewer.id
    key, receiver = _thread_key(args, viewer_id)
    if isinstance(key, MatchThreadKey):
        match = await _require_participant(session, key.match_id)
        message = await session.match_threads.send_message(key, viewer_id, match.other(viewer_id), args.content)
    else:
        message = await session.direct_threads.send_message(key, viewer_id, receiver, args.content)
    print(f"Sent {message.id} at {_fmt_time(message.sent_at)}")


async def cmd_thread(args: argparse.Namespace, store: Store) -> None:
    session = await Session.open(store)
    viewer_id = session.viewer.id
    key, _ = _thread_key(args, viewer_id)
    if isinstance(key, MatchThreadKey):
        await _require_participant(session, key.match_id)
    threads = session.match_threads if isinstance(key, MatchThreadKey) else session.direct_threads
    messages = await threads.thread_messages(key)
    names = await _names(store)
    if not messages:
        print("No messages yet.")
    for m in messages:
        who = "You" if m.sender_id == viewer_id else names.get(m.sender_id, m.sender_id)
        marker = "" if m.read or m.receiver_id != viewer_id else " *"
        print(f"[{_fmt_time(m.sent_at)}] {who}: {m.content}{marker}")
    # Opening a thread marks it read, as the chat screen does
    await threads.mark_thread_read(key, viewer_id)


async def cmd_conversations(args: argparse.Namespace, store: Store) -> None:
    session = await Session.open(store)
    conversations = await session.direct_threads.conversations(session.viewer.id)
    if not conversations:
        print("No project conversations.")
        return
    projects = {p.id: p.title for p in await store.list_projects()}
    for c in conversations:
        unread = f" [{c.unread_count} unread]" if c.unread_count else ""
        print(f"{projects.get(c.project_id, c.project_id)} with {c.other_user_name} ({c.other_user_id}){unread}")
        print(f"  Last: {c.last_message.content}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="musematch", description="Swipe, match and chat with musicians")
    parser.add_argument("--version", action="store_true", help="Show version")
    parser.add_argument("--backend", choices=BACKENDS, help="Storage backend (or set MUSEMATCH_BACKEND)")
    parser.add_argument("--data-dir", type=Path, help="Directory for JSON collections (or set MUSEMATCH_DATA_DIR)")
    parser.add_argument("--db", type=Path, help="SQLite database path (or set MUSEMATCH_DB_PATH)")
    parser.add_argument("--stats", action="store_true", help="Log session metrics when done")

    subparsers = parser.add_subparsers(dest="command")

    seed = subparsers.add_parser("seed", help="Install sample musicians and projects")
    seed.add_argument("--viewer", help="Also sign in as this user id")
    seed.set_defaults(func=cmd_seed)

    use = subparsers.add_parser("use", help="Sign in as an existing user")
    use.add_argument("--user", required=True, help="User id")
    use.set_defaults(func=cmd_use)

    disc = subparsers.add_parser("discover", help="Show the ranked discovery deck")
    disc.add_argument("--limit", type=int, help="Only show the top N candidates")
    disc.set_defaults(func=cmd_discover)

    swp = subparsers.add_parser("swipe", help="Apply decisions to the deck, in order")
    swp.add_argument("--decisions", required=True, help="Comma-separated like/pass (or right/left)")
    swp.set_defaults(func=cmd_swipe)

    mat = subparsers.add_parser("matches", help="List matches with unread counts")
    mat.set_defaults(func=cmd_matches)

    for name, help_text in (("send", "Send a message"), ("thread", "Show a thread and mark it read")):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("--match", help="Match id (match thread)")
        sub.add_argument("--project", help="Project id (project thread)")
        sub.add_argument("--with", dest="other", help="Other user id (project thread)")
        if name == "send":
            sub.add_argument("--content", required=True, help="Message text (max 500 characters)")
            sub.set_defaults(func=cmd_send)
        else:
            sub.set_defaults(func=cmd_thread)

    conv = subparsers.add_parser("conversations", help="List project conversations")
    conv.set_defaults(func=cmd_conversations)
    return parser


def main(argv: Optional[List[str]] = None):
    load_env()
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.version:
        print(__version__)
        return

    if not hasattr(args, "func"):
        parser.print_help()
        return

    try:
        settings = Settings.from_env()
    except ValueError as e:
        raise SystemExit(str(e))
    if args.backend:
        settings.backend = args.backend
    if args.data_dir:
        settings.data_dir = args.data_dir
    if args.db:
        settings.db_path = args.db

    logger = get_logger(
        level=settings.log_level,
        log_dir=settings.log_dir,
        enable_file=settings.log_to_file,
    )
    store = settings.open_store()
    try:
        asyncio.run(args.func(args, store))
    except NoCurrentViewerError:
        raise SystemExit("No user signed in. Run 'musematch use --user <id>' first.")
    except MuseMatchError as e:
        raise SystemExit(f"{type(e).__name__}: {e}")
    finally:
        if hasattr(store, "close"):
            store.close()
        if args.stats:
            logger.log_metrics_summary()


if __name__ == "__main__":
    main()

import os
import sys
import yaml
from core.errors import TournamentError
from core.models import Entrant
from core.tournament import create_tournament


def load_entrants(file_path):
    """
    Load players from a YAML file.

    Accepts either a list of players or {'players': [...]}, each with an
    id (defaults to the name), a name, optional tags and an optional seed.
    """
    with open(file_path, mode='r', encoding='utf-8') as file:
        data = yaml.safe_load(file) or []
    if isinstance(data, dict):
        data = data.get('players', [])

    entrants = []
    for item in data:
        if isinstance(item, str):
            item = {'name': item}
        item.setdefault('id', item['name'])
        entrants.append(Entrant.from_dict(item))
    return entrants


def main():
    script_dir = os.path.dirname(__file__)
    base_dir = os.path.dirname(script_dir)

    # Use command line argument if provided, otherwise use default path
    players_file = sys.argv[1] if len(sys.argv) > 1 else os.path.join(base_dir, 'data', 'entrants.yaml')

    entrants = load_entrants(players_file)

    try:
        groups, matches = create_tournament(entrants)
    except TournamentError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1

    first_group = True
    for group in groups:
        if not first_group:
            print()  # Blank line between groups
        tags = ', '.join(group.tags) if group.tags else 'no shared days'
        print(f"# {group.id} ({tags})")
        for match in matches:
            if match.group_id == group.id:
                print(f"{match.player1.name} vs {match.player2.name}")
        first_group = False
    return 0


if __name__ == '__main__':
    sys.exit(main())

import sys
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, TemplateSyntaxError

from sticker_clone_bot.services.localization import Localization


ROOT = Path(__file__).parent


def collect_errors(root: Path = ROOT) -> list[str]:
    errors: list[str] = []

    templates_dir = root / 'stats_viewer' / 'templates'
    env = Environment(loader=FileSystemLoader(str(templates_dir)))
    for template_path in templates_dir.rglob('*.html'):
        rel_path = template_path.relative_to(templates_dir).as_posix()
        try:
            env.get_template(rel_path)
        except TemplateSyntaxError as e:
            errors.append(f"Syntax Error in {rel_path}:{e.lineno} - {e.message}")

    localization = Localization()
    localization.load(root / 'localization.csv')
    errors.extend(f"Syntax Error in localization.csv {item}" for item in localization.check_templates())
    if not localization.supported_languages():
        errors.append("localization.csv has no language_title row")
    return errors


def main():
    if not (ROOT / 'localization.csv').exists():
        print(f"Error: {ROOT / 'localization.csv'} does not exist.")
        sys.exit(1)

    errors = collect_errors()
    for line in errors:
        print(line)

    if errors:
        print(f"Found {len(errors)} template errors.")
        sys.exit(1)
    else:
        print("All templates parsed successfully.")
        sys.exit(0)


if __name__ == '__main__':
    main()

import os
from wpvet import create_app

app = create_app()

if __name__ == '__main__':
    # Debug/reloader off by default; enable with WPVET_DEBUG_SERVER=1
    debug_flag = os.environ.get('WPVET_DEBUG_SERVER', '0') == '1'
    port = int(os.environ.get('WPVET_PORT', '5000'))
    routes = sorted({r.rule for r in app.url_map.iter_rules()})
    print(f"[wpvet] Route count={len(routes)} routes={routes}")
    app.run(host=os.environ.get('WPVET_HOST', '127.0.0.1'), port=port, debug=debug_flag, use_reloader=debug_flag)

from setuptools import setup

setup(
	name='logind-idle-control',
	version='0.1.0',
	description='Control the systemd-logind idle inhibitor of a graphical session',
	packages=['logind_idle_control'],
	package_dir={'':'src'},
	python_requires='>=3.11',
	install_requires=[
		'dbus-python',
		'PyGObject',
	],
	extras_require={
		'test': [
			'pytest',
		],
	},
	entry_points={
		'console_scripts': [
			'logind-idle-control=logind_idle_control:main',
		]
	}
)

#!/usr/bin/env python3
"""
Скрипт для запуска всех тестов Quiz Battle Bot
"""

import sys
import subprocess
from pathlib import Path

TESTS_DIR = Path(__file__).parent

def run_test(test_file):
    """Запускает тест и возвращает результат"""
    print(f"\n{'='*60}")
    print(f"Запуск теста: {test_file}")
    print(f"{'='*60}")
    
    try:
        result = subprocess.run([sys.executable, test_file], 
                              capture_output=True, text=True, cwd=TESTS_DIR)
        
        print(result.stdout)
        if result.stderr:
            # unittest пишет отчет в stderr
            print(result.stderr)
        
        return result.returncode == 0
    except OSError as e:
        print(f"Ошибка запуска теста {test_file}: {e}")
        return False

def main():
    """Основная функция запуска всех тестов"""
    print("ЗАПУСК ВСЕХ ТЕСТОВ QUIZ BATTLE BOT")
    print("=" * 60)
    
    tests = sorted(p.name for p in TESTS_DIR.glob("test_*.py"))
    
    results = {}
    total_tests = len(tests)
    passed_tests = 0
    
    for test_file in tests:
        success = run_test(test_file)
        results[test_file] = success
        if success:
            passed_tests += 1
    
    print(f"\n{'='*60}")
    print("ИТОГОВЫЙ ОТЧЕТ ПО ТЕСТИРОВАНИЮ")
    print(f"{'='*60}")
    
    for test_file, success in results.items():
        status = "ПРОЙДЕН" if success else "НЕ ПРОЙДЕН"
        print(f"{test_file}: {status}")
    
    print(f"\nРезультат: {passed_tests}/{total_tests} тестов пройдено")
    
    if passed_tests == total_tests:
        print("ВСЕ ТЕСТЫ ПРОЙДЕНЫ УСПЕШНО!")
        return 0
    else:
        print("НЕКОТОРЫЕ ТЕСТЫ НЕ ПРОЙДЕНЫ")
        return 1

if __name__ == "__main__":
    sys.exit(main())
